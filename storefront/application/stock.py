import logging
from typing import Iterable

from storefront.domain.models import OrderItem
from storefront.domain.exceptions import InsufficientStockError

logger = logging.getLogger(__name__)


async def consume_stock(uow, items: Iterable[OrderItem]) -> None:
    """Списывает stock и увеличивает sold по всем позициям.

    Вызывается внутри транзакции: при нехватке товара на любой позиции
    исключение откатывает уже выполненные списания вместе с заказом.
    """
    for item in items:
        consumed = await uow.catalog.consume_stock(item.product_id, item.quantity)
        if not consumed:
            product = await uow.catalog.get_by_id(item.product_id)
            available = product.stock if product else 0
            logger.warning(f"Товар {item.product_id} закончился во время оформления заказа")
            raise InsufficientStockError(item.name, available, item.quantity)


async def release_stock(uow, items: Iterable[OrderItem]) -> None:
    """Обратная операция к consume_stock: stock += q, sold -= q"""
    for item in items:
        await uow.catalog.release_stock(item.product_id, item.quantity)
