import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from storefront.domain.models import (
    DashboardStats, OrderStats, OrderStatus, ProductStats, RevenueStats, ReviewStats,
)

logger = logging.getLogger(__name__)


def month_bounds(now: datetime) -> tuple[datetime, datetime]:
    """Начало текущего и начало прошлого месяца"""
    start_of_month = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    start_of_last_month = (start_of_month - timedelta(days=1)).replace(day=1)
    return start_of_month, start_of_last_month


class GetDashboardStatsUseCase:
    """Сводка для панели администратора.

    Выручка считается по заказам delivered + paid: доставка переводит заказ
    в paid, поэтому выручка растёт вместе с доставками. Пользователи живут в
    identity-сервисе и здесь не считаются.
    """

    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, now: Optional[datetime] = None) -> DashboardStats:
        now = now or datetime.now(timezone.utc)
        start_of_month, start_of_last_month = month_bounds(now)

        async with self._uow() as uow:
            stats = uow.stats
            orders = OrderStats(
                total=await stats.count_orders(),
                this_month=await stats.count_orders(since=start_of_month),
                pending=await stats.count_orders(status=OrderStatus.PENDING),
                processing=await stats.count_orders(status=OrderStatus.PROCESSING),
            )
            revenue = RevenueStats(
                total=await stats.revenue(),
                this_month=await stats.revenue(since=start_of_month),
                last_month=await stats.revenue(since=start_of_last_month, until=start_of_month),
            )
            products = ProductStats(
                total=await stats.count_products(),
                active=await stats.count_products(active=True),
                out_of_stock=await stats.count_products(out_of_stock=True),
            )
            reviews = ReviewStats(
                total=await stats.count_reviews(),
                this_month=await stats.count_reviews(since=start_of_month),
            )

        logger.info(f"Статистика: заказов {orders.total}, выручка {revenue.total}")
        return DashboardStats(orders=orders, revenue=revenue, products=products, reviews=reviews)
