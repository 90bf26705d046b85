from fastapi import APIRouter, Depends, HTTPException

from storefront.domain.models import CurrentUser
from storefront.domain.exceptions import DomainException
from storefront.presentation.dependencies import get_current_user, get_unit_of_work
from storefront.presentation.schemas import (
    AddToCartRequest, ApiResponse, CartResponse, ErrorResponse, UpdateCartItemRequest,
)
from storefront.application.cart import (
    AddToCartUseCase, ClearCartUseCase, GetCartUseCase, RemoveFromCartUseCase, UpdateCartItemUseCase,
)

router = APIRouter(prefix="/cart", tags=["cart"], responses={400: {"model": ErrorResponse}})


@router.get("", response_model=ApiResponse[CartResponse])
async def get_cart(user: CurrentUser = Depends(get_current_user), uow=Depends(get_unit_of_work)):
    cart = await GetCartUseCase(uow)(user.id)
    return ApiResponse(data=CartResponse.from_domain(cart))


@router.post("", response_model=ApiResponse[CartResponse])
async def add_to_cart(
    request: AddToCartRequest,
    user: CurrentUser = Depends(get_current_user),
    uow=Depends(get_unit_of_work)
):
    try:
        cart = await AddToCartUseCase(uow)(user.id, request.product_id, request.quantity)
    except DomainException as e:
        raise HTTPException(status_code=400, detail=str(e))
    return ApiResponse(data=CartResponse.from_domain(cart))


@router.put("/{product_id}", response_model=ApiResponse[CartResponse])
async def update_cart_item(
    product_id: str,
    request: UpdateCartItemRequest,
    user: CurrentUser = Depends(get_current_user),
    uow=Depends(get_unit_of_work)
):
    try:
        cart = await UpdateCartItemUseCase(uow)(user.id, product_id, request.quantity)
    except DomainException as e:
        raise HTTPException(status_code=400, detail=str(e))
    return ApiResponse(data=CartResponse.from_domain(cart))


@router.delete("/{product_id}", response_model=ApiResponse[CartResponse])
async def remove_from_cart(
    product_id: str,
    user: CurrentUser = Depends(get_current_user),
    uow=Depends(get_unit_of_work)
):
    try:
        cart = await RemoveFromCartUseCase(uow)(user.id, product_id)
    except DomainException as e:
        raise HTTPException(status_code=400, detail=str(e))
    return ApiResponse(data=CartResponse.from_domain(cart))


@router.delete("", response_model=ApiResponse[CartResponse])
async def clear_cart(user: CurrentUser = Depends(get_current_user), uow=Depends(get_unit_of_work)):
    try:
        cart = await ClearCartUseCase(uow)(user.id)
    except DomainException as e:
        raise HTTPException(status_code=400, detail=str(e))
    return ApiResponse(data=CartResponse.from_domain(cart))
