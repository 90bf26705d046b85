import logging
from datetime import datetime, timezone

from storefront.domain.models import Order, OrderStatus
from storefront.domain.exceptions import OrderNotFoundError, InvalidStateError
from storefront.application.stock import release_stock

logger = logging.getLogger(__name__)


class CancelOrderUseCase:
    """Отмена заказа владельцем — только из pending, с возвратом товара на склад"""

    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, order_id: str, user_id: str) -> Order:
        async with self._uow() as uow:
            order = await uow.orders.get_by_id(order_id)
            if not order or order.user_id != user_id:
                raise OrderNotFoundError(f"Заказ {order_id} не найден")

            if not order.can_be_cancelled_by_owner():
                raise InvalidStateError("Отменить можно только заказ в статусе pending")

            now = datetime.now(timezone.utc)
            # Статус меняется до возврата товара: повторная отмена не найдёт pending строку
            claimed = await uow.orders.compare_and_set_status(
                order_id,
                expected=OrderStatus.PENDING,
                values={"status": OrderStatus.CANCELLED, "cancelled_at": now}
            )
            if not claimed:
                raise InvalidStateError("Заказ уже изменён, отмена невозможна")

            await release_stock(uow, order.items)
            await uow.commit()

        logger.info(f"Заказ {order_id} отменён пользователем {user_id}")
        return order.model_copy(update={"status": OrderStatus.CANCELLED, "cancelled_at": now, "updated_at": now})
