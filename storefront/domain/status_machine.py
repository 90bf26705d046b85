"""Машина состояний выполнения заказа.

Объявленные переходы описаны в TRANSITIONS. Побочные эффекты привязаны к
паре (from, to): доставка означает оплату (COD расчёт при получении),
отмена возвращает товар на склад.
"""
from datetime import datetime
from typing import Callable
from pydantic import BaseModel

from storefront.domain.models import Order, OrderStatus, PaymentStatus
from storefront.domain.exceptions import InvalidStateError


TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({
        OrderStatus.PROCESSING, OrderStatus.SHIPPED, OrderStatus.DELIVERED, OrderStatus.CANCELLED,
    }),
    OrderStatus.PROCESSING: frozenset({OrderStatus.SHIPPED, OrderStatus.DELIVERED, OrderStatus.CANCELLED}),
    OrderStatus.SHIPPED: frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED}),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}


class StatusChange(BaseModel):
    """Результат планирования перехода: новые значения полей заказа и нужен ли возврат товара"""
    source: OrderStatus
    target: OrderStatus
    values: dict
    releases_stock: bool = False
    declared: bool = True

    @property
    def is_noop(self) -> bool:
        return not self.values


def _on_delivered(order: Order, now: datetime) -> dict:
    values = {"payment_status": PaymentStatus.PAID}
    if order.delivered_at is None:
        values["delivered_at"] = now
    if order.paid_at is None:
        values["paid_at"] = now
    return values


def _on_cancelled(order: Order, now: datetime) -> dict:
    if order.cancelled_at is None:
        return {"cancelled_at": now}
    return {}


Hook = Callable[[Order, datetime], dict]

_HOOKS_BY_TARGET: dict[OrderStatus, Hook] = {
    OrderStatus.DELIVERED: _on_delivered,
    OrderStatus.CANCELLED: _on_cancelled,
}

HOOKS: dict[tuple[OrderStatus, OrderStatus], Hook] = {
    (source, target): _HOOKS_BY_TARGET[target]
    for source in OrderStatus
    for target in OrderStatus
    if target in _HOOKS_BY_TARGET and source != target
}


def _reapply(order: Order, target: OrderStatus, now: datetime) -> StatusChange:
    """Повторная установка текущего статуса.

    Для delivered связь с оплатой восстанавливается: если оплату успели
    сменить (например на failed), заказ снова становится paid. Остальные
    статусы повторно ничего не меняют.
    """
    values = {}
    if target == OrderStatus.DELIVERED:
        values = _on_delivered(order, now)
        if order.payment_status == PaymentStatus.PAID:
            del values["payment_status"]
    return StatusChange(source=target, target=target, values=values)


def is_declared(source: OrderStatus, target: OrderStatus) -> bool:
    return target in TRANSITIONS[source]


def plan_transition(order: Order, target: OrderStatus, now: datetime, allow_override: bool = True) -> StatusChange:
    """Проверяет переход и собирает изменения полей.

    allow_override разрешает администратору необъявленные переходы,
    кроме выхода из cancelled: товар уже возвращён на склад.
    """
    source = order.status

    if source == OrderStatus.CANCELLED:
        if target == OrderStatus.CANCELLED:
            raise InvalidStateError("Заказ уже отменён")
        raise InvalidStateError("Отменённый заказ нельзя вернуть в работу")

    if source == target:
        return _reapply(order, target, now)

    declared = is_declared(source, target)
    if not declared and not allow_override:
        raise InvalidStateError(f"Недопустимый переход статуса: {source.value} -> {target.value}")

    values = {"status": target}
    hook = HOOKS.get((source, target))
    if hook is not None:
        values.update(hook(order, now))

    return StatusChange(
        source=source,
        target=target,
        values=values,
        releases_stock=target == OrderStatus.CANCELLED,
        declared=declared,
    )
