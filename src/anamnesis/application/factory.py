"""
Service Factory
Centralizes wiring of the engine components from configuration.
"""

from anamnesis.application.config import AppConfig
from anamnesis.application.mastery.engine import MasteryEngine
from anamnesis.application.review_service import ReviewService
from anamnesis.application.scheduling.scheduler import Scheduler
from anamnesis.domain.review.ports import CardRepository
from anamnesis.infrastructure.adapters.yaml_store import YamlCardRepository


def get_scheduler(config: AppConfig) -> Scheduler:
    return Scheduler(config.scheduler)


def get_mastery_engine(config: AppConfig) -> MasteryEngine:
    return MasteryEngine(
        config.mastery,
        min_difficulty=config.scheduler.min_difficulty,
        max_difficulty=config.scheduler.max_difficulty,
    )


def get_card_repository(config: AppConfig) -> CardRepository:
    """
    Returns the CardRepository backing the configured store path.
    """
    return YamlCardRepository(config.store_path)


def get_review_service(
    config: AppConfig, repository: CardRepository | None = None
) -> ReviewService:
    """
    Returns a ReviewService wired to the configured parameters.

    Pass ``repository`` to use a store other than the configured YAML file.
    """
    return ReviewService(
        repository or get_card_repository(config),
        scheduler=get_scheduler(config),
        engine=get_mastery_engine(config),
        max_session_size=config.queue.max_session_size,
    )
