import logging
from datetime import datetime, timezone

from storefront.domain.models import Order, OrderStatus, PaymentStatus
from storefront.domain.exceptions import ConcurrentUpdateError, OrderNotFoundError
from storefront.domain.status_machine import plan_transition
from storefront.application.stock import release_stock

logger = logging.getLogger(__name__)


class UpdateOrderStatusUseCase:
    """Смена статуса администратором.

    delivered -> оплачено (paymentStatus=paid, paidAt); cancelled -> возврат товара.
    """

    def __init__(self, unit_of_work, strict_transitions: bool = False):
        self._uow = unit_of_work
        self._strict = strict_transitions

    async def __call__(self, order_id: str, status: OrderStatus) -> Order:
        async with self._uow() as uow:
            order = await uow.orders.get_by_id(order_id)
            if not order:
                raise OrderNotFoundError(f"Заказ {order_id} не найден")

            now = datetime.now(timezone.utc)
            change = plan_transition(order, status, now, allow_override=not self._strict)
            if change.is_noop:
                logger.info(f"Заказ {order_id} уже в статусе {status.value}")
                return order

            if not change.declared:
                logger.warning(
                    f"Принудительный переход заказа {order_id}: {change.source.value} -> {change.target.value}"
                )

            claimed = await uow.orders.compare_and_set_status(order_id, expected=change.source, values=change.values)
            if not claimed:
                raise ConcurrentUpdateError("Статус заказа был изменён параллельно, повторите запрос")

            if change.releases_stock:
                await release_stock(uow, order.items)

            await uow.commit()

        logger.info(f"Заказ {order_id}: {change.source.value} -> {change.target.value}")
        return order.model_copy(update={**change.values, "updated_at": now})


class UpdatePaymentStatusUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, order_id: str, payment_status: PaymentStatus) -> Order:
        async with self._uow() as uow:
            order = await uow.orders.get_by_id(order_id)
            if not order:
                raise OrderNotFoundError(f"Заказ {order_id} не найден")

            now = datetime.now(timezone.utc)
            paid_at = None
            if payment_status == PaymentStatus.PAID and order.paid_at is None:
                paid_at = now

            await uow.orders.update_payment_status(order_id, payment_status, paid_at)
            await uow.commit()

        logger.info(f"Заказ {order_id}: оплата {order.payment_status.value} -> {payment_status.value}")
        update = {"payment_status": payment_status, "updated_at": now}
        if paid_at is not None:
            update["paid_at"] = paid_at
        return order.model_copy(update=update)
