"""Data layer - ORM models, mappers, repositories and unit of work."""

from .strategies import PersistenceStrategy, create_order_repository, repository_class
from .uow import UnitOfWork, create_uow

__all__ = [
    "PersistenceStrategy",
    "UnitOfWork",
    "create_order_repository",
    "create_uow",
    "repository_class",
]
