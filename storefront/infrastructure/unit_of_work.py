from contextlib import asynccontextmanager
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from storefront.infrastructure.repositories import (
    SQLAlchemyOrderRepository,
    SQLAlchemyCatalogRepository,
    SQLAlchemyCartRepository,
    SQLAlchemyReviewRepository,
    SQLAlchemyStatsRepository
)


class UnitOfWork:
    """Каждый `async with uow() as tx` открывает свою сессию и транзакцию.

    Заказ, склад, корзина и отзывы меняются через репозитории tx и
    фиксируются только явным tx.commit(). Без commit, как и при исключении,
    изменения откатываются.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    @asynccontextmanager
    async def __call__(self):
        async with self._session_factory() as session:
            tx = _Transaction(session)
            try:
                yield tx
            except Exception:
                await session.rollback()
                raise
            if not tx.committed:
                await session.rollback()


class _Transaction:
    def __init__(self, session: AsyncSession):
        self._session = session
        self.committed = False
        self.orders = SQLAlchemyOrderRepository(session)
        self.catalog = SQLAlchemyCatalogRepository(session)
        self.carts = SQLAlchemyCartRepository(session)
        self.reviews = SQLAlchemyReviewRepository(session)
        self.stats = SQLAlchemyStatsRepository(session)

    async def commit(self):
        await self._session.commit()
        self.committed = True

    async def rollback(self):
        await self._session.rollback()
        self.committed = False
