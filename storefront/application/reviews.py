import logging
import uuid
from datetime import datetime, timezone
from typing import Optional
from pydantic import BaseModel, Field

from storefront.domain.models import CurrentUser, Page, Review
from storefront.domain.exceptions import (
    DuplicateReviewError, ProductNotFoundError, ReviewNotFoundError, ValidationError,
)
from storefront.application.rating import recompute_product_rating

logger = logging.getLogger(__name__)


class CreateReviewDTO(BaseModel):
    user_id: str
    product_id: str
    rating: int = Field(ge=1, le=5)
    comment: str


class UpdateReviewDTO(BaseModel):
    rating: Optional[int] = Field(default=None, ge=1, le=5)
    comment: Optional[str] = None


class CreateReviewUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, dto: CreateReviewDTO) -> Review:
        if not dto.comment.strip():
            raise ValidationError("comment не может быть пустым")

        async with self._uow() as uow:
            # блокировка товара сериализует проверку дубликата и пересчёт
            product = await uow.catalog.get_for_update(dto.product_id)
            if not product:
                raise ProductNotFoundError(f"Товар {dto.product_id} не существует")

            existing = await uow.reviews.get_by_user_and_product(dto.user_id, dto.product_id)
            if existing:
                raise DuplicateReviewError()

            # Только для отображения, не условие доступа
            verified = await uow.orders.has_delivered_purchase(dto.user_id, dto.product_id)

            now = datetime.now(timezone.utc)
            review = Review(
                id=str(uuid.uuid4()),
                user_id=dto.user_id,
                product_id=dto.product_id,
                rating=dto.rating,
                comment=dto.comment.strip(),
                is_verified_purchase=verified,
                created_at=now,
                updated_at=now
            )
            await uow.reviews.create(review)
            await recompute_product_rating(uow, dto.product_id)
            await uow.commit()

        logger.info(f"Отзыв {review.id} на товар {dto.product_id} создан")
        return review


async def _get_owned_review(uow, review_id: str, user: CurrentUser) -> Review:
    review = await uow.reviews.get_by_id(review_id)
    if not review or (not user.is_admin and review.user_id != user.id):
        raise ReviewNotFoundError(f"Отзыв {review_id} не найден")
    return review


class UpdateReviewUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, review_id: str, user: CurrentUser, dto: UpdateReviewDTO) -> Review:
        if dto.rating is None and dto.comment is None:
            raise ValidationError("Нужно указать rating или comment")
        if dto.comment is not None and not dto.comment.strip():
            raise ValidationError("comment не может быть пустым")

        async with self._uow() as uow:
            review = await _get_owned_review(uow, review_id, user)

            update = {"updated_at": datetime.now(timezone.utc)}
            if dto.rating is not None:
                update["rating"] = dto.rating
            if dto.comment is not None:
                update["comment"] = dto.comment.strip()
            review = review.model_copy(update=update)

            await uow.reviews.update(review)
            await recompute_product_rating(uow, review.product_id)
            await uow.commit()

        logger.info(f"Отзыв {review_id} обновлён")
        return review


class DeleteReviewUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, review_id: str, user: CurrentUser) -> None:
        async with self._uow() as uow:
            review = await _get_owned_review(uow, review_id, user)
            await uow.reviews.delete(review.id)
            await recompute_product_rating(uow, review.product_id)
            await uow.commit()

        logger.info(f"Отзыв {review_id} удалён пользователем {user.id}")


class ListReviewsUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, page: int = 1, limit: int = 10, product_id: Optional[str] = None,
                       user_id: Optional[str] = None) -> Page:
        async with self._uow() as uow:
            reviews, total = await uow.reviews.list_page(
                page=page, limit=limit, product_id=product_id, user_id=user_id
            )
            return Page(items=reviews, total=total, page=page, limit=limit)
