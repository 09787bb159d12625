"""SQLAlchemy unit of work.

One session (and one database transaction) per unit of work. Every save
first claims the stored row at the version the aggregate was loaded with,
so a write based on a stale read fails with ``ConflictError`` and the
runner retries the whole operation.
"""

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from oms.application.unit_of_work import AbstractUnitOfWork
from oms.infrastructure.database import get_session_factory
from oms.infrastructure.repositories import (
    SqlAlchemyCustomerRepository,
    SqlAlchemyOrderRepository,
    SqlAlchemyProductRepository,
    translate_store_errors,
)


class SqlAlchemyUnitOfWork(AbstractUnitOfWork):
    """Unit of work backed by an async SQLAlchemy session."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession] | None = None) -> None:
        """Initialize unit of work.

        Args:
            session_factory: Session factory (defaults to the process-wide one).
        """
        super().__init__()
        self.session_factory = session_factory or get_session_factory()
        self.session: AsyncSession | None = None

    async def _begin(self) -> None:
        self.session = self.session_factory()
        self.products = SqlAlchemyProductRepository(self.session)
        self.orders = SqlAlchemyOrderRepository(self.session)
        self.customers = SqlAlchemyCustomerRepository(self.session)

    async def _commit(self) -> None:
        with translate_store_errors():
            await self.session.commit()

    async def _rollback(self) -> None:
        if self.session is not None:
            await self.session.rollback()

    async def _close(self) -> None:
        if self.session is not None:
            await self.session.close()
            self.session = None
