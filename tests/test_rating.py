from contextlib import asynccontextmanager

import pytest

from conftest import ADMIN, OTHER_USER, USER
from storefront.application.reviews import (
    CreateReviewDTO, CreateReviewUseCase, DeleteReviewUseCase, ListReviewsUseCase, UpdateReviewDTO,
    UpdateReviewUseCase,
)
from storefront.application.update_order_status import UpdateOrderStatusUseCase
from storefront.domain.exceptions import (
    DuplicateReviewError, ProductNotFoundError, ReviewNotFoundError, ValidationError,
)
from storefront.domain.models import OrderStatus
from storefront.domain.rating import compute_rating


@pytest.mark.parametrize("ratings, expected", [
    ([], (0.0, 0)),
    ([5], (5.0, 1)),
    ([4, 2], (3.0, 2)),
    ([5, 4, 4], (4.3, 3)),
    ([5, 4, 5, 4], (4.5, 4)),
    ([1, 2, 2], (1.7, 3)),
])
def test_compute_rating(ratings, expected):
    assert compute_rating(ratings) == expected


@pytest.fixture
def write_review(uow):
    async def _write(product, rating, user=USER, comment="Хороший товар"):
        dto = CreateReviewDTO(user_id=user.id, product_id=product.id, rating=rating, comment=comment)
        return await CreateReviewUseCase(uow)(dto)

    return _write


class TestReviewAggregate:
    async def test_rating_follows_create_and_delete(self, uow, add_product, get_product, write_review):
        product = await add_product()

        await write_review(product, 4, user=USER)
        second = await write_review(product, 2, user=OTHER_USER)
        after_two = await get_product(product.id)
        assert (after_two.rating, after_two.num_reviews) == (3.0, 2)

        await DeleteReviewUseCase(uow)(second.id, OTHER_USER)
        after_delete = await get_product(product.id)
        assert (after_delete.rating, after_delete.num_reviews) == (4.0, 1)

    async def test_last_review_deleted_resets_to_zero(self, uow, add_product, get_product, write_review):
        product = await add_product()
        review = await write_review(product, 5)

        await DeleteReviewUseCase(uow)(review.id, USER)

        after = await get_product(product.id)
        assert (after.rating, after.num_reviews) == (0.0, 0)

    async def test_update_recomputes(self, uow, add_product, get_product, write_review):
        product = await add_product()
        review = await write_review(product, 5)
        await write_review(product, 3, user=OTHER_USER)

        updated = await UpdateReviewUseCase(uow)(review.id, USER, UpdateReviewDTO(rating=1))

        assert updated.rating == 1
        assert updated.comment == "Хороший товар"
        after = await get_product(product.id)
        assert (after.rating, after.num_reviews) == (2.0, 2)

    async def test_one_review_per_user_and_product(self, add_product, get_product, write_review):
        product = await add_product()
        await write_review(product, 5)

        with pytest.raises(DuplicateReviewError):
            await write_review(product, 1)

        after = await get_product(product.id)
        assert (after.rating, after.num_reviews) == (5.0, 1)

    async def test_unknown_product(self, uow):
        dto = CreateReviewDTO(user_id=USER.id, product_id="missing", rating=5, comment="ok")
        with pytest.raises(ProductNotFoundError):
            await CreateReviewUseCase(uow)(dto)

    async def test_blank_comment_is_rejected(self, add_product, write_review):
        product = await add_product()
        with pytest.raises(ValidationError):
            await write_review(product, 4, comment="   ")


class TestVerifiedPurchase:
    async def test_delivered_order_marks_review_verified(self, uow, add_product, add_to_cart, place_order,
                                                         write_review):
        product = await add_product()
        await add_to_cart(product, 1)
        order = await place_order()
        await UpdateOrderStatusUseCase(uow)(order.id, OrderStatus.DELIVERED)

        review = await write_review(product, 5)

        assert review.is_verified_purchase

    async def test_undelivered_order_is_not_verified(self, add_product, add_to_cart, place_order, write_review):
        product = await add_product()
        await add_to_cart(product, 1)
        await place_order()

        review = await write_review(product, 5)

        assert not review.is_verified_purchase


class TestReviewOwnership:
    async def test_other_user_cannot_edit(self, uow, add_product, write_review):
        product = await add_product()
        review = await write_review(product, 5)

        with pytest.raises(ReviewNotFoundError):
            await UpdateReviewUseCase(uow)(review.id, OTHER_USER, UpdateReviewDTO(rating=1))
        with pytest.raises(ReviewNotFoundError):
            await DeleteReviewUseCase(uow)(review.id, OTHER_USER)

    async def test_admin_can_delete(self, uow, add_product, get_product, write_review):
        product = await add_product()
        review = await write_review(product, 5)

        await DeleteReviewUseCase(uow)(review.id, ADMIN)

        assert (await get_product(product.id)).num_reviews == 0

    async def test_update_requires_a_field(self, uow, add_product, write_review):
        product = await add_product()
        review = await write_review(product, 5)

        with pytest.raises(ValidationError):
            await UpdateReviewUseCase(uow)(review.id, USER, UpdateReviewDTO())

    async def test_list_by_product(self, uow, add_product, write_review):
        product = await add_product()
        other = await add_product(name="Creatine")
        await write_review(product, 5, user=USER)
        await write_review(product, 4, user=OTHER_USER)
        await write_review(other, 3, user=USER)

        page = await ListReviewsUseCase(uow)(page=1, limit=10, product_id=product.id)

        assert page.total == 2
        assert {review.user_id for review in page.items} == {USER.id, OTHER_USER.id}


class _Recorder:
    def __init__(self, inner, calls, name):
        self._inner = inner
        self._calls = calls
        self._name = name

    def __getattr__(self, attr):
        method = getattr(self._inner, attr)

        async def _call(*args, **kwargs):
            self._calls.append(f"{self._name}.{attr}")
            return await method(*args, **kwargs)

        return _call


class RecordingUnitOfWork:
    """Записывает порядок обращений к каталогу и отзывам внутри транзакции."""

    def __init__(self, inner):
        self._inner = inner
        self.calls = []

    @asynccontextmanager
    async def __call__(self):
        async with self._inner() as tx:
            tx.catalog = _Recorder(tx.catalog, self.calls, "catalog")
            tx.reviews = _Recorder(tx.reviews, self.calls, "reviews")
            yield tx


def _locked_before_read(calls):
    return calls.index("catalog.get_for_update") < calls.index("reviews.ratings_for_product")


class TestRecomputeLocksProduct:
    async def test_create_locks_before_reading_ratings(self, uow, add_product):
        product = await add_product()
        recording = RecordingUnitOfWork(uow)

        dto = CreateReviewDTO(user_id=USER.id, product_id=product.id, rating=5, comment="ok")
        await CreateReviewUseCase(recording)(dto)

        assert _locked_before_read(recording.calls)
        assert recording.calls[0] == "catalog.get_for_update"

    async def test_update_and_delete_lock_before_reading_ratings(self, uow, add_product, write_review):
        product = await add_product()
        review = await write_review(product, 5)

        updating = RecordingUnitOfWork(uow)
        await UpdateReviewUseCase(updating)(review.id, USER, UpdateReviewDTO(rating=2))
        assert _locked_before_read(updating.calls)

        deleting = RecordingUnitOfWork(uow)
        await DeleteReviewUseCase(deleting)(review.id, USER)
        assert _locked_before_read(deleting.calls)

    async def test_locking_read_returns_product(self, uow, add_product):
        product = await add_product(name="Casein")

        async with uow() as tx:
            locked = await tx.catalog.get_for_update(product.id)
            missing = await tx.catalog.get_for_update("missing")

        assert locked.name == "Casein"
        assert missing is None
