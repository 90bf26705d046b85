"""Pytest fixtures for storefront tests."""

import uuid
from decimal import Decimal
from typing import Optional

import httpx
import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from storefront.application.cart import AddToCartUseCase
from storefront.application.interfaces import IdentityService
from storefront.application.place_order import PlaceOrderDTO, PlaceOrderUseCase
from storefront.domain.models import CurrentUser, PaymentMethod, Product, ShippingAddress, UserRole
from storefront.infrastructure.db_schema import metadata
from storefront.infrastructure.unit_of_work import UnitOfWork


USER = CurrentUser(id="user-1", name="Nguyen Van A", email="a@example.com", phone="0901234567")
OTHER_USER = CurrentUser(id="user-2", name="Tran Thi B", email="b@example.com", phone="0907654321")
ADMIN = CurrentUser(id="admin-1", name="Admin", email="admin@example.com", role=UserRole.ADMIN)

TOKENS = {
    "user-token": USER,
    "other-token": OTHER_USER,
    "admin-token": ADMIN,
}


def auth(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def shipping_address() -> ShippingAddress:
    return ShippingAddress(
        full_name="Nguyen Van A",
        phone="0901234567",
        street="12 Le Loi Street",
        district="District 1",
        city="Ho Chi Minh City",
    )


class FakeIdentityService(IdentityService):
    async def get_current_user(self, token: str) -> Optional[CurrentUser]:
        return TOKENS.get(token)


@pytest.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'storefront.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def uow(session_factory):
    return UnitOfWork(session_factory)


@pytest.fixture
def add_product(uow):
    """Factory: put a product into the catalog."""

    async def _add(**overrides) -> Product:
        data = {
            "id": str(uuid.uuid4()),
            "name": "Whey Protein",
            "images": ["whey-front.jpg", "whey-back.jpg"],
            "price": Decimal("500000"),
            "stock": 5,
        }
        data.update(overrides)
        product = Product(**data)
        async with uow() as tx:
            await tx.catalog.add(product)
            await tx.commit()
        return product

    return _add


@pytest.fixture
def get_product(uow):
    async def _get(product_id: str) -> Optional[Product]:
        async with uow() as tx:
            return await tx.catalog.get_by_id(product_id)

    return _get


@pytest.fixture
def get_order(uow):
    async def _get(order_id: str):
        async with uow() as tx:
            return await tx.orders.get_by_id(order_id)

    return _get


@pytest.fixture
def get_cart(uow):
    async def _get(user_id: str):
        async with uow() as tx:
            return await tx.carts.get_by_user(user_id)

    return _get


@pytest.fixture
def add_to_cart(uow):
    async def _add(product: Product, quantity: int = 1, user_id: str = USER.id):
        return await AddToCartUseCase(uow)(user_id, product.id, quantity)

    return _add


@pytest.fixture
def place_order(uow):
    async def _place(user_id: str = USER.id, shipping_price: Decimal = Decimal("30000")):
        dto = PlaceOrderDTO(
            user_id=user_id,
            shipping_address=shipping_address(),
            payment_method=PaymentMethod.COD,
            shipping_price=shipping_price,
        )
        return await PlaceOrderUseCase(uow)(dto)

    return _place


@pytest.fixture
async def client(session_factory):
    """HTTP client bound to the app with the test database and fake identity service."""
    from storefront.database import get_session_factory
    from storefront.main import app
    from storefront.presentation.dependencies import get_identity_service

    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_identity_service] = lambda: FakeIdentityService()

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as http_client:
        yield http_client

    app.dependency_overrides.clear()


@pytest.fixture
def update_product(uow):
    """Change catalog fields directly, bypassing the order engine (admin catalog edits)."""
    from sqlalchemy import update
    from storefront.infrastructure.db_schema import products_tbl

    async def _update(product_id: str, **values):
        async with uow() as tx:
            await tx._session.execute(
                update(products_tbl).where(products_tbl.c.id == product_id).values(**values)
            )
            await tx.commit()

    return _update


@pytest.fixture
def delete_product(uow):
    from sqlalchemy import delete
    from storefront.infrastructure.db_schema import products_tbl

    async def _delete(product_id: str):
        async with uow() as tx:
            await tx._session.execute(delete(products_tbl).where(products_tbl.c.id == product_id))
            await tx.commit()

    return _delete
