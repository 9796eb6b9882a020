# Domain Mastery Package
from .models import LADDER, STATE_METADATA, MasteryDistribution, MasteryState, StateMetadata

__all__ = ["LADDER", "STATE_METADATA", "MasteryDistribution", "MasteryState", "StateMetadata"]
