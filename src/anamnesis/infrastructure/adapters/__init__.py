# Infrastructure Adapters Package
from .memory_store import InMemoryCardRepository
from .yaml_store import YamlCardRepository

__all__ = ["InMemoryCardRepository", "YamlCardRepository"]
