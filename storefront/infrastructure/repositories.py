from collections import defaultdict
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional, List
from sqlalchemy import select, insert, update, delete, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.domain.models import (
    Cart, CartItem, Order, OrderItem, OrderStatus, PaymentStatus, Product, Review, ShippingAddress,
)
from storefront.domain.exceptions import ConcurrentUpdateError
from storefront.infrastructure.db_schema import (
    products_tbl, carts_tbl, cart_items_tbl, orders_tbl, order_items_tbl, reviews_tbl,
)
from storefront.application.interfaces import (
    OrderRepository, CatalogRepository, CartRepository, ReviewRepository, StatsRepository,
)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class SQLAlchemyOrderRepository(OrderRepository):
    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_by_id(self, order_id: str) -> Optional[Order]:
        result = await self._session.execute(
            select(orders_tbl).where(orders_tbl.c.id == order_id)
        )
        row = result.fetchone()
        if not row:
            return None
        items = await self._load_items([row.id])
        return self._to_domain(row, items[row.id])

    async def order_number_exists(self, order_number: str) -> bool:
        result = await self._session.execute(
            select(orders_tbl.c.id).where(orders_tbl.c.order_number == order_number)
        )
        return result.first() is not None

    async def create(self, order: Order) -> None:
        await self._session.execute(
            insert(orders_tbl).values(
                id=order.id,
                order_number=order.order_number,
                user_id=order.user_id,
                shipping_address=order.shipping_address.model_dump(),
                payment_method=order.payment_method,
                payment_status=order.payment_status,
                items_price=order.items_price,
                shipping_price=order.shipping_price,
                total_price=order.total_price,
                status=order.status,
                note=order.note,
                created_at=order.created_at,
                updated_at=order.updated_at
            )
        )
        await self._session.execute(
            insert(order_items_tbl),
            [
                {
                    "order_id": order.id,
                    "position": position,
                    "product_id": item.product_id,
                    "name": item.name,
                    "image": item.image,
                    "unit_price": item.unit_price,
                    "quantity": item.quantity,
                }
                for position, item in enumerate(order.items)
            ]
        )

    async def compare_and_set_status(self, order_id: str, expected: OrderStatus, values: dict) -> bool:
        stmt = (
            update(orders_tbl)
            .where(orders_tbl.c.id == order_id, orders_tbl.c.status == expected)
            .values(**values, updated_at=_now())
        )
        result = await self._session.execute(stmt)
        return result.rowcount == 1

    async def update_payment_status(self, order_id: str, payment_status: PaymentStatus,
                                    paid_at: Optional[datetime]) -> None:
        values = {"payment_status": payment_status, "updated_at": _now()}
        if paid_at is not None:
            values["paid_at"] = paid_at
        await self._session.execute(
            update(orders_tbl).where(orders_tbl.c.id == order_id).values(**values)
        )

    async def list_page(self, page: int, limit: int, user_id: Optional[str] = None,
                        status: Optional[OrderStatus] = None, search: Optional[str] = None) -> tuple[List[Order], int]:
        conditions = []
        if user_id:
            conditions.append(orders_tbl.c.user_id == user_id)
        if status:
            conditions.append(orders_tbl.c.status == status)
        if search:
            conditions.append(orders_tbl.c.order_number.icontains(search, autoescape=True))

        total = await self._session.scalar(
            select(func.count()).select_from(orders_tbl).where(*conditions)
        )
        result = await self._session.execute(
            select(orders_tbl)
            .where(*conditions)
            .order_by(orders_tbl.c.created_at.desc(), orders_tbl.c.id)
            .limit(limit)
            .offset((page - 1) * limit)
        )
        rows = result.fetchall()
        items = await self._load_items([row.id for row in rows])
        return [self._to_domain(row, items[row.id]) for row in rows], total or 0

    async def has_delivered_purchase(self, user_id: str, product_id: str) -> bool:
        stmt = (
            select(order_items_tbl.c.id)
            .join(orders_tbl, order_items_tbl.c.order_id == orders_tbl.c.id)
            .where(
                orders_tbl.c.user_id == user_id,
                orders_tbl.c.status == OrderStatus.DELIVERED,
                order_items_tbl.c.product_id == product_id,
            )
            .limit(1)
        )
        return await self._session.scalar(stmt) is not None

    async def _load_items(self, order_ids: List[str]) -> dict:
        items = defaultdict(list)
        if not order_ids:
            return items
        result = await self._session.execute(
            select(order_items_tbl)
            .where(order_items_tbl.c.order_id.in_(order_ids))
            .order_by(order_items_tbl.c.order_id, order_items_tbl.c.position)
        )
        for row in result.fetchall():
            items[row.order_id].append(
                OrderItem(
                    product_id=row.product_id,
                    name=row.name,
                    image=row.image,
                    unit_price=row.unit_price,
                    quantity=row.quantity
                )
            )
        return items

    def _to_domain(self, row, items: List[OrderItem]) -> Order:
        """Трансформация DB → Domain"""
        return Order(
            id=row.id,
            order_number=row.order_number,
            user_id=row.user_id,
            items=tuple(items),
            shipping_address=ShippingAddress(**row.shipping_address),
            payment_method=row.payment_method,
            payment_status=PaymentStatus(row.payment_status),
            items_price=row.items_price,
            shipping_price=row.shipping_price,
            total_price=row.total_price,
            status=OrderStatus(row.status),
            note=row.note,
            paid_at=row.paid_at,
            delivered_at=row.delivered_at,
            cancelled_at=row.cancelled_at,
            created_at=row.created_at,
            updated_at=row.updated_at
        )


class SQLAlchemyCatalogRepository(CatalogRepository):
    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_by_id(self, product_id: str) -> Optional[Product]:
        result = await self._session.execute(
            select(products_tbl).where(products_tbl.c.id == product_id)
        )
        row = result.fetchone()
        return self._to_domain(row) if row else None

    async def get_for_update(self, product_id: str) -> Optional[Product]:
        # SELECT ... FOR UPDATE; SQLite и так сериализует запись
        result = await self._session.execute(
            select(products_tbl).where(products_tbl.c.id == product_id).with_for_update()
        )
        row = result.fetchone()
        return self._to_domain(row) if row else None

    async def add(self, product: Product) -> None:
        await self._session.execute(
            insert(products_tbl).values(**product.model_dump())
        )

    async def consume_stock(self, product_id: str, quantity: int) -> bool:
        """Условное списание: проверка остатка и запись в одном UPDATE"""
        stmt = (
            update(products_tbl)
            .where(products_tbl.c.id == product_id, products_tbl.c.stock >= quantity)
            .values(
                stock=products_tbl.c.stock - quantity,
                sold=products_tbl.c.sold + quantity,
                updated_at=_now()
            )
        )
        result = await self._session.execute(stmt)
        return result.rowcount == 1

    async def release_stock(self, product_id: str, quantity: int) -> None:
        stmt = (
            update(products_tbl)
            .where(products_tbl.c.id == product_id)
            .values(
                stock=products_tbl.c.stock + quantity,
                sold=products_tbl.c.sold - quantity,
                updated_at=_now()
            )
        )
        await self._session.execute(stmt)

    async def update_rating(self, product_id: str, rating: float, num_reviews: int) -> None:
        stmt = (
            update(products_tbl)
            .where(products_tbl.c.id == product_id)
            .values(rating=rating, num_reviews=num_reviews, updated_at=_now())
        )
        await self._session.execute(stmt)

    def _to_domain(self, row) -> Product:
        return Product(
            id=row.id,
            name=row.name,
            images=list(row.images or []),
            price=row.price,
            discount=row.discount,
            stock=row.stock,
            sold=row.sold,
            rating=row.rating,
            num_reviews=row.num_reviews,
            is_active=row.is_active
        )


class SQLAlchemyCartRepository(CartRepository):
    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_by_user(self, user_id: str) -> Optional[Cart]:
        result = await self._session.execute(
            select(carts_tbl).where(carts_tbl.c.user_id == user_id)
        )
        row = result.fetchone()
        if not row:
            return None
        items_result = await self._session.execute(
            select(cart_items_tbl)
            .where(cart_items_tbl.c.cart_id == row.id)
            .order_by(cart_items_tbl.c.position)
        )
        items = [
            CartItem(product_id=item.product_id, quantity=item.quantity, unit_price=item.unit_price)
            for item in items_result.fetchall()
        ]
        return Cart(id=row.id, user_id=row.user_id, items=items, updated_at=row.updated_at)

    async def save(self, cart: Cart) -> None:
        now = _now()
        result = await self._session.execute(
            update(carts_tbl).where(carts_tbl.c.id == cart.id).values(updated_at=now)
        )
        if result.rowcount == 0:
            try:
                await self._session.execute(
                    insert(carts_tbl).values(id=cart.id, user_id=cart.user_id, created_at=now, updated_at=now)
                )
            except IntegrityError as e:
                # корзину этого пользователя только что создал другой запрос
                raise ConcurrentUpdateError() from e
        await self._session.execute(
            delete(cart_items_tbl).where(cart_items_tbl.c.cart_id == cart.id)
        )
        if cart.items:
            await self._session.execute(
                insert(cart_items_tbl),
                [
                    {
                        "cart_id": cart.id,
                        "position": position,
                        "product_id": item.product_id,
                        "quantity": item.quantity,
                        "unit_price": item.unit_price,
                    }
                    for position, item in enumerate(cart.items)
                ]
            )
        cart.updated_at = now

    async def clear(self, cart_id: str) -> None:
        """Очищает позиции, сама корзина остаётся"""
        await self._session.execute(
            delete(cart_items_tbl).where(cart_items_tbl.c.cart_id == cart_id)
        )
        await self._session.execute(
            update(carts_tbl).where(carts_tbl.c.id == cart_id).values(updated_at=_now())
        )


class SQLAlchemyReviewRepository(ReviewRepository):
    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_by_id(self, review_id: str) -> Optional[Review]:
        result = await self._session.execute(
            select(reviews_tbl).where(reviews_tbl.c.id == review_id)
        )
        row = result.fetchone()
        return self._to_domain(row) if row else None

    async def get_by_user_and_product(self, user_id: str, product_id: str) -> Optional[Review]:
        result = await self._session.execute(
            select(reviews_tbl).where(
                reviews_tbl.c.user_id == user_id,
                reviews_tbl.c.product_id == product_id
            )
        )
        row = result.fetchone()
        return self._to_domain(row) if row else None

    async def create(self, review: Review) -> None:
        await self._session.execute(
            insert(reviews_tbl).values(**review.model_dump())
        )

    async def update(self, review: Review) -> None:
        await self._session.execute(
            update(reviews_tbl)
            .where(reviews_tbl.c.id == review.id)
            .values(rating=review.rating, comment=review.comment, updated_at=review.updated_at)
        )

    async def delete(self, review_id: str) -> None:
        await self._session.execute(
            delete(reviews_tbl).where(reviews_tbl.c.id == review_id)
        )

    async def ratings_for_product(self, product_id: str) -> List[int]:
        result = await self._session.execute(
            select(reviews_tbl.c.rating).where(reviews_tbl.c.product_id == product_id)
        )
        return list(result.scalars().all())

    async def list_page(self, page: int, limit: int, product_id: Optional[str] = None,
                        user_id: Optional[str] = None) -> tuple[List[Review], int]:
        conditions = []
        if product_id:
            conditions.append(reviews_tbl.c.product_id == product_id)
        if user_id:
            conditions.append(reviews_tbl.c.user_id == user_id)

        total = await self._session.scalar(
            select(func.count()).select_from(reviews_tbl).where(*conditions)
        )
        result = await self._session.execute(
            select(reviews_tbl)
            .where(*conditions)
            .order_by(reviews_tbl.c.created_at.desc(), reviews_tbl.c.id)
            .limit(limit)
            .offset((page - 1) * limit)
        )
        return [self._to_domain(row) for row in result.fetchall()], total or 0

    def _to_domain(self, row) -> Review:
        return Review(
            id=row.id,
            user_id=row.user_id,
            product_id=row.product_id,
            rating=row.rating,
            comment=row.comment,
            is_verified_purchase=row.is_verified_purchase,
            created_at=row.created_at,
            updated_at=row.updated_at
        )


class SQLAlchemyStatsRepository(StatsRepository):
    """Агрегаты для панели администратора"""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def count_orders(self, status: Optional[OrderStatus] = None, since: Optional[datetime] = None) -> int:
        stmt = select(func.count()).select_from(orders_tbl)
        if status:
            stmt = stmt.where(orders_tbl.c.status == status)
        if since:
            stmt = stmt.where(orders_tbl.c.created_at >= since)
        return await self._session.scalar(stmt) or 0

    async def revenue(self, since: Optional[datetime] = None, until: Optional[datetime] = None) -> Decimal:
        stmt = select(func.coalesce(func.sum(orders_tbl.c.total_price), 0)).where(
            orders_tbl.c.status == OrderStatus.DELIVERED,
            orders_tbl.c.payment_status == PaymentStatus.PAID,
        )
        if since:
            stmt = stmt.where(orders_tbl.c.created_at >= since)
        if until:
            stmt = stmt.where(orders_tbl.c.created_at < until)
        total = await self._session.scalar(stmt)
        return Decimal(str(total or 0)).quantize(Decimal("0.01"))

    async def count_products(self, active: Optional[bool] = None, out_of_stock: bool = False) -> int:
        stmt = select(func.count()).select_from(products_tbl)
        if active is not None:
            stmt = stmt.where(products_tbl.c.is_active == active)
        if out_of_stock:
            stmt = stmt.where(products_tbl.c.stock == 0)
        return await self._session.scalar(stmt) or 0

    async def count_reviews(self, since: Optional[datetime] = None) -> int:
        stmt = select(func.count()).select_from(reviews_tbl)
        if since:
            stmt = stmt.where(reviews_tbl.c.created_at >= since)
        return await self._session.scalar(stmt) or 0
