"""Unit of Work pattern for atomic transactions."""

import logging
from typing import Optional, Union

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from order_store.domain.repositories import OrderRepository

from .strategies import PersistenceStrategy, create_order_repository


logger = logging.getLogger(__name__)


class UnitOfWork:
    """
    Unit of Work pattern for atomic transactions.

    Responsibilities:
    1. Manage SQLAlchemy session lifecycle
    2. Build the configured OrderRepository strategy lazily
    3. Atomic commit/rollback of all repository operations
    4. Own the persistence context (the session identity map) and let the
       caller drop it explicitly with ``invalidate()``

    Usage:
        async with UnitOfWork(session_factory) as uow:
            order = await uow.orders.find_by_id(order_id)
            order.confirm()
            await uow.orders.save(order)
            await uow.commit()
    """

    def __init__(
        self,
        session_factory: async_sessionmaker,
        strategy: Optional[Union[PersistenceStrategy, str]] = None,
    ) -> None:
        """Initialize Unit of Work.

        Args:
            session_factory: SQLAlchemy async session factory
            strategy: Persistence strategy; defaults to ``PersistenceSettings.strategy``
        """
        if strategy is None:
            from order_store.settings import get_persistence_settings

            strategy = get_persistence_settings().strategy

        self._session_factory = session_factory
        self._strategy = PersistenceStrategy(strategy)
        self._session: Optional[AsyncSession] = None

        # Lazy-loaded repositories
        self._order_repository: Optional[OrderRepository] = None

    async def __aenter__(self) -> "UnitOfWork":
        """Start transaction scope."""
        self._session = self._session_factory()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Rollback on exception, always close the session."""
        try:
            if exc_type is not None:
                logger.error(f"Transaction failed: {exc_val!r}")
                await self._session.rollback()
        finally:
            await self._session.close()
            self._session = None
            self._order_repository = None

    @property
    def strategy(self) -> PersistenceStrategy:
        return self._strategy

    @property
    def session(self) -> AsyncSession:
        if self._session is None:
            raise RuntimeError("UnitOfWork not initialized. Use async context manager.")
        return self._session

    @property
    def orders(self) -> OrderRepository:
        """Lazy-load order repository for the configured strategy.

        Returns:
            OrderRepository instance
        """
        if self._order_repository is None:
            self._order_repository = create_order_repository(self.session, self._strategy)
        return self._order_repository

    async def commit(self) -> None:
        """Commit all pending changes."""
        try:
            await self.session.commit()
            logger.debug("Transaction committed")
        except Exception as e:
            logger.error(f"❌ Commit failed: {e}")
            await self.session.rollback()
            raise

    async def rollback(self) -> None:
        """Rollback all pending changes."""
        await self.session.rollback()
        logger.warning("Transaction rolled back")

    def invalidate(self) -> None:
        """Drop every cached entity from the persistence context.

        Call between logically independent operations that share this unit
        of work. Pending, unflushed changes are discarded.
        """
        self.session.expunge_all()


def create_uow(
    session_factory: async_sessionmaker,
    strategy: Optional[Union[PersistenceStrategy, str]] = None,
) -> UnitOfWork:
    """Create a new Unit of Work instance.

    Args:
        session_factory: SQLAlchemy async session factory
        strategy: Persistence strategy override

    Returns:
        UnitOfWork instance
    """
    return UnitOfWork(session_factory, strategy)
