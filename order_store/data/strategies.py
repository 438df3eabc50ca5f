"""
Persistence strategy registry.

Callers pick a strategy by configuration key and receive an
``OrderRepository``; nothing downstream inspects the concrete class.
"""
import logging
from enum import Enum
from typing import Dict, Type, Union

from sqlalchemy.ext.asyncio import AsyncSession

from order_store.domain.repositories import OrderRepository

from .repositories import (
    AggregateOrmOrderRepository,
    AggregateSqlOrderRepository,
    RowOrmOrderRepository,
    RowSqlOrderRepository,
)


logger = logging.getLogger(__name__)


class PersistenceStrategy(str, Enum):
    """Available persistence strategies."""

    AGGREGATE_ORM = "aggregate_orm"
    AGGREGATE_SQL = "aggregate_sql"
    ROW_ORM = "row_orm"
    ROW_SQL = "row_sql"


_REGISTRY: Dict[PersistenceStrategy, Type[OrderRepository]] = {
    PersistenceStrategy.AGGREGATE_ORM: AggregateOrmOrderRepository,
    PersistenceStrategy.AGGREGATE_SQL: AggregateSqlOrderRepository,
    PersistenceStrategy.ROW_ORM: RowOrmOrderRepository,
    PersistenceStrategy.ROW_SQL: RowSqlOrderRepository,
}


def repository_class(strategy: Union[PersistenceStrategy, str]) -> Type[OrderRepository]:
    """
    Resolve a strategy key to its repository class.

    Raises:
        ValueError: If the key is unknown
    """
    return _REGISTRY[PersistenceStrategy(strategy)]


def create_order_repository(
    session: AsyncSession,
    strategy: Union[PersistenceStrategy, str],
) -> OrderRepository:
    """
    Build the repository for ``strategy`` bound to ``session``.

    Args:
        session: SQLAlchemy async session
        strategy: Strategy key (see ``PersistenceStrategy``)

    Returns:
        OrderRepository instance
    """
    repository_cls = repository_class(strategy)
    logger.debug(f"Using {repository_cls.__name__} for strategy {PersistenceStrategy(strategy).value}")
    return repository_cls(session)
