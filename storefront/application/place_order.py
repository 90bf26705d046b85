import logging
import secrets
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, Field

from storefront.domain.models import (
    Order, OrderItem, OrderStatus, PaymentMethod, PaymentStatus, ShippingAddress,
)
from storefront.domain.exceptions import (
    EmptyCartError, InsufficientStockError, ProductNotFoundError, ProductUnavailableError,
)
from storefront.application.stock import consume_stock


logger = logging.getLogger(__name__)


class PlaceOrderDTO(BaseModel):
    user_id: str
    shipping_address: ShippingAddress
    payment_method: PaymentMethod = PaymentMethod.COD
    shipping_price: Decimal = Field(default=Decimal(0), ge=0)
    note: Optional[str] = None


async def generate_order_number(uow, now: datetime) -> str:
    """ORD + дата + 4 случайные цифры, уникальный среди существующих заказов"""
    while True:
        number = f"ORD{now:%Y%m%d}{secrets.randbelow(10000):04d}"
        if not await uow.orders.order_number_exists(number):
            return number


class PlaceOrderUseCase:
    """Корзина -> заказ.

    Сначала проверяются все позиции, затем в той же транзакции создаётся
    заказ, списывается товар и очищается корзина. Ошибка на любом шаге
    откатывает всё целиком.
    """

    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, dto: PlaceOrderDTO) -> Order:
        logger.info(f"Оформление заказа для пользователя {dto.user_id}")

        async with self._uow() as uow:
            # 1. Корзина и актуальные данные товаров
            cart = await uow.carts.get_by_user(dto.user_id)
            if not cart or not cart.items:
                raise EmptyCartError()

            order_items = []
            for line in cart.items:
                product = await uow.catalog.get_by_id(line.product_id)
                if not product:
                    raise ProductNotFoundError(f"Товар {line.product_id} не существует")
                if not product.is_active:
                    raise ProductUnavailableError(product.name)
                if product.stock < line.quantity:
                    raise InsufficientStockError(product.name, product.stock, line.quantity)

                # 2. Снимок позиции: цена из корзины, название и фото из каталога
                order_items.append(
                    OrderItem(
                        product_id=product.id,
                        name=product.name,
                        image=product.primary_image,
                        unit_price=line.unit_price,
                        quantity=line.quantity
                    )
                )

            # 3. Расчет суммы
            items_price = sum((item.line_total for item in order_items), Decimal(0))
            total_price = items_price + dto.shipping_price

            # 4. Создание заказа
            now = datetime.now(timezone.utc)
            order = Order(
                id=str(uuid.uuid4()),
                order_number=await generate_order_number(uow, now),
                user_id=dto.user_id,
                items=tuple(order_items),
                shipping_address=dto.shipping_address,
                payment_method=dto.payment_method,
                items_price=items_price,
                shipping_price=dto.shipping_price,
                total_price=total_price,
                status=OrderStatus.PENDING,
                payment_status=PaymentStatus.PENDING,
                note=dto.note,
                created_at=now,
                updated_at=now
            )
            await uow.orders.create(order)

            # 5. Списание со склада
            await consume_stock(uow, order.items)

            # 6. Очистка корзины
            await uow.carts.clear(cart.id)

            await uow.commit()

        logger.info(f"Заказ создан: {order.id} ({order.order_number}), сумма {order.total_price}")
        return order
