from fastapi import APIRouter, Depends

from storefront.domain.models import CurrentUser
from storefront.presentation.dependencies import get_unit_of_work, require_admin
from storefront.presentation.schemas import ApiResponse, DashboardStatsResponse
from storefront.application.dashboard import GetDashboardStatsUseCase

router = APIRouter(prefix="/admin", tags=["admin"])


def get_dashboard_stats_use_case(uow=Depends(get_unit_of_work)):
    return GetDashboardStatsUseCase(uow)


@router.get("/stats", response_model=ApiResponse[DashboardStatsResponse])
async def get_dashboard_stats(
    admin: CurrentUser = Depends(require_admin),
    use_case: GetDashboardStatsUseCase = Depends(get_dashboard_stats_use_case)
):
    """Сводка: заказы по статусам, выручка, товары, отзывы"""
    stats = await use_case()
    return ApiResponse(data=DashboardStatsResponse.from_domain(stats))
