from typing import Optional

from storefront.domain.models import CurrentUser, Order, OrderStatus, Page
from storefront.domain.exceptions import OrderNotFoundError


class GetOrderUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, order_id: str, user: CurrentUser) -> Order:
        async with self._uow() as uow:
            order = await uow.orders.get_by_id(order_id)
            # Чужой заказ для обычного пользователя выглядит как несуществующий
            if not order or (not user.is_admin and order.user_id != user.id):
                raise OrderNotFoundError(f"Заказ {order_id} не найден")
            return order


class ListOrdersUseCase:
    """Список заказов: пользователя (user_id) или все (для администратора)"""

    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, page: int = 1, limit: int = 10, user_id: Optional[str] = None,
                       status: Optional[OrderStatus] = None, search: Optional[str] = None) -> Page:
        async with self._uow() as uow:
            orders, total = await uow.orders.list_page(
                page=page, limit=limit, user_id=user_id, status=status, search=search
            )
            return Page(items=orders, total=total, page=page, limit=limit)
