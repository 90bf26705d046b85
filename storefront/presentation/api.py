from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query, status

from storefront.config import settings
from storefront.domain.models import CurrentUser, OrderStatus, ShippingAddress
from storefront.domain.exceptions import DomainException, OrderNotFoundError
from storefront.presentation.dependencies import get_current_user, get_unit_of_work, require_admin
from storefront.presentation.schemas import (
    ApiResponse, CreateOrderRequest, ErrorResponse, OrderListResponse, OrderResponse,
    UpdateOrderStatusRequest, UpdatePaymentStatusRequest,
)
from storefront.application.place_order import PlaceOrderUseCase, PlaceOrderDTO
from storefront.application.cancel_order import CancelOrderUseCase
from storefront.application.get_order import GetOrderUseCase, ListOrdersUseCase
from storefront.application.update_order_status import UpdateOrderStatusUseCase, UpdatePaymentStatusUseCase

router = APIRouter(prefix="/orders", tags=["orders"])


# Фабрики для создания use cases
def get_place_order_use_case(uow=Depends(get_unit_of_work)):
    return PlaceOrderUseCase(uow)


def get_cancel_order_use_case(uow=Depends(get_unit_of_work)):
    return CancelOrderUseCase(uow)


def get_get_order_use_case(uow=Depends(get_unit_of_work)):
    return GetOrderUseCase(uow)


def get_list_orders_use_case(uow=Depends(get_unit_of_work)):
    return ListOrdersUseCase(uow)


def get_update_status_use_case(uow=Depends(get_unit_of_work)):
    return UpdateOrderStatusUseCase(uow, strict_transitions=settings.STRICT_STATUS_TRANSITIONS)


def get_update_payment_use_case(uow=Depends(get_unit_of_work)):
    return UpdatePaymentStatusUseCase(uow)


@router.post(
    "",
    response_model=ApiResponse[OrderResponse],
    responses={400: {"model": ErrorResponse}},
    status_code=status.HTTP_201_CREATED
)
async def place_order(
    request: CreateOrderRequest,
    user: CurrentUser = Depends(get_current_user),
    use_case: PlaceOrderUseCase = Depends(get_place_order_use_case)
):
    """Оформить заказ из корзины"""
    shipping_price = request.shipping_price
    if shipping_price is None:
        shipping_price = settings.DEFAULT_SHIPPING_PRICE
    try:
        dto = PlaceOrderDTO(
            user_id=user.id,
            shipping_address=ShippingAddress(**request.shipping_address.model_dump()),
            payment_method=request.payment_method,
            shipping_price=shipping_price,
            note=request.note
        )
        order = await use_case(dto)
        return ApiResponse(data=OrderResponse.from_domain(order, user))
    except DomainException as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/my-orders", response_model=ApiResponse[OrderListResponse])
async def get_my_orders(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    order_status: Optional[OrderStatus] = Query(None, alias="status"),
    user: CurrentUser = Depends(get_current_user),
    use_case: ListOrdersUseCase = Depends(get_list_orders_use_case)
):
    """Заказы текущего пользователя"""
    result = await use_case(page=page, limit=limit, user_id=user.id, status=order_status)
    return ApiResponse(data=OrderListResponse.from_page(result, user))


@router.get("/all", response_model=ApiResponse[OrderListResponse])
async def get_all_orders(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    order_status: Optional[OrderStatus] = Query(None, alias="status"),
    search: Optional[str] = Query(None, min_length=1, max_length=50),
    admin: CurrentUser = Depends(require_admin),
    use_case: ListOrdersUseCase = Depends(get_list_orders_use_case)
):
    """Все заказы (администратор), поиск по номеру заказа"""
    result = await use_case(page=page, limit=limit, status=order_status, search=search)
    return ApiResponse(data=OrderListResponse.from_page(result))


@router.get(
    "/{order_id}",
    response_model=ApiResponse[OrderResponse],
    responses={404: {"model": ErrorResponse}}
)
async def get_order(
    order_id: str,
    user: CurrentUser = Depends(get_current_user),
    use_case: GetOrderUseCase = Depends(get_get_order_use_case)
):
    """Получить заказ по ID (владелец или администратор)"""
    try:
        order = await use_case(order_id, user)
    except OrderNotFoundError:
        raise HTTPException(status_code=404, detail="Заказ не найден")
    return ApiResponse(data=OrderResponse.from_domain(order, user if order.user_id == user.id else None))


@router.put(
    "/{order_id}/cancel",
    response_model=ApiResponse[OrderResponse],
    responses={400: {"model": ErrorResponse}}
)
async def cancel_order(
    order_id: str,
    user: CurrentUser = Depends(get_current_user),
    use_case: CancelOrderUseCase = Depends(get_cancel_order_use_case)
):
    """Отменить свой заказ (только pending)"""
    try:
        order = await use_case(order_id, user.id)
        return ApiResponse(data=OrderResponse.from_domain(order, user))
    except DomainException as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.put(
    "/{order_id}/status",
    response_model=ApiResponse[OrderResponse],
    responses={400: {"model": ErrorResponse}}
)
async def update_order_status(
    order_id: str,
    request: UpdateOrderStatusRequest,
    admin: CurrentUser = Depends(require_admin),
    use_case: UpdateOrderStatusUseCase = Depends(get_update_status_use_case)
):
    """Изменить статус заказа (администратор)"""
    try:
        order = await use_case(order_id, request.status)
        return ApiResponse(data=OrderResponse.from_domain(order))
    except DomainException as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.put(
    "/{order_id}/payment",
    response_model=ApiResponse[OrderResponse],
    responses={400: {"model": ErrorResponse}}
)
async def update_payment_status(
    order_id: str,
    request: UpdatePaymentStatusRequest,
    admin: CurrentUser = Depends(require_admin),
    use_case: UpdatePaymentStatusUseCase = Depends(get_update_payment_use_case)
):
    """Изменить статус оплаты (администратор)"""
    try:
        order = await use_case(order_id, request.payment_status)
        return ApiResponse(data=OrderResponse.from_domain(order))
    except DomainException as e:
        raise HTTPException(status_code=400, detail=str(e))
