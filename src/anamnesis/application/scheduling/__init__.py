# Application Scheduling Package
from .scheduler import Scheduler, curve_factor, interval_for_retention, retrievability

__all__ = ["Scheduler", "curve_factor", "interval_for_retention", "retrievability"]
