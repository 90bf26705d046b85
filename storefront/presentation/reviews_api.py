from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query, status

from storefront.domain.models import CurrentUser
from storefront.domain.exceptions import DomainException, ReviewNotFoundError
from storefront.presentation.dependencies import get_current_user, get_unit_of_work, require_admin
from storefront.presentation.schemas import (
    ApiResponse, CreateReviewRequest, ErrorResponse, MessageResponse, ReviewListResponse, ReviewResponse,
    UpdateReviewRequest,
)
from storefront.application.reviews import (
    CreateReviewDTO, CreateReviewUseCase, DeleteReviewUseCase, ListReviewsUseCase, UpdateReviewDTO,
    UpdateReviewUseCase,
)

router = APIRouter(prefix="/reviews", tags=["reviews"])


@router.post(
    "",
    response_model=ApiResponse[ReviewResponse],
    responses={400: {"model": ErrorResponse}},
    status_code=status.HTTP_201_CREATED
)
async def create_review(
    request: CreateReviewRequest,
    user: CurrentUser = Depends(get_current_user),
    uow=Depends(get_unit_of_work)
):
    """Оставить отзыв, рейтинг товара пересчитывается"""
    try:
        dto = CreateReviewDTO(
            user_id=user.id,
            product_id=request.product_id,
            rating=request.rating,
            comment=request.comment
        )
        review = await CreateReviewUseCase(uow)(dto)
    except DomainException as e:
        raise HTTPException(status_code=400, detail=str(e))
    return ApiResponse(data=ReviewResponse.from_domain(review))


@router.get("/product/{product_id}", response_model=ApiResponse[ReviewListResponse])
async def get_product_reviews(
    product_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    uow=Depends(get_unit_of_work)
):
    result = await ListReviewsUseCase(uow)(page=page, limit=limit, product_id=product_id)
    return ApiResponse(data=ReviewListResponse.from_page(result))


@router.get("/my-reviews", response_model=ApiResponse[ReviewListResponse])
async def get_my_reviews(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    user: CurrentUser = Depends(get_current_user),
    uow=Depends(get_unit_of_work)
):
    result = await ListReviewsUseCase(uow)(page=page, limit=limit, user_id=user.id)
    return ApiResponse(data=ReviewListResponse.from_page(result))


@router.get("", response_model=ApiResponse[ReviewListResponse])
async def get_all_reviews(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    product_id: Optional[str] = Query(None, alias="productId"),
    user_id: Optional[str] = Query(None, alias="userId"),
    admin: CurrentUser = Depends(require_admin),
    uow=Depends(get_unit_of_work)
):
    result = await ListReviewsUseCase(uow)(page=page, limit=limit, product_id=product_id, user_id=user_id)
    return ApiResponse(data=ReviewListResponse.from_page(result))


@router.put(
    "/{review_id}",
    response_model=ApiResponse[ReviewResponse],
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}}
)
async def update_review(
    review_id: str,
    request: UpdateReviewRequest,
    user: CurrentUser = Depends(get_current_user),
    uow=Depends(get_unit_of_work)
):
    """Изменить отзыв (владелец или администратор)"""
    try:
        dto = UpdateReviewDTO(rating=request.rating, comment=request.comment)
        review = await UpdateReviewUseCase(uow)(review_id, user, dto)
    except ReviewNotFoundError:
        raise HTTPException(status_code=404, detail="Отзыв не найден")
    except DomainException as e:
        raise HTTPException(status_code=400, detail=str(e))
    return ApiResponse(data=ReviewResponse.from_domain(review))


@router.delete(
    "/{review_id}",
    response_model=ApiResponse[MessageResponse],
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}}
)
async def delete_review(
    review_id: str,
    user: CurrentUser = Depends(get_current_user),
    uow=Depends(get_unit_of_work)
):
    """Удалить отзыв (владелец или администратор)"""
    try:
        await DeleteReviewUseCase(uow)(review_id, user)
    except ReviewNotFoundError:
        raise HTTPException(status_code=404, detail="Отзыв не найден")
    except DomainException as e:
        raise HTTPException(status_code=400, detail=str(e))
    return ApiResponse(data=MessageResponse(message="Отзыв удалён"))
