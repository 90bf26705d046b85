import logging

from storefront.domain.rating import compute_rating

logger = logging.getLogger(__name__)


async def recompute_product_rating(uow, product_id: str) -> tuple[float, int]:
    """Полный пересчёт rating/num_reviews товара по всем его отзывам.

    O(n) на каждое изменение отзыва; вызывается в транзакции изменения отзыва.
    Строка товара блокируется до чтения оценок: параллельные изменения отзывов
    одного товара пересчитываются по очереди и видят отзывы друг друга.
    """
    await uow.catalog.get_for_update(product_id)
    ratings = await uow.reviews.ratings_for_product(product_id)
    rating, num_reviews = compute_rating(ratings)
    await uow.catalog.update_rating(product_id, rating, num_reviews)
    logger.info(f"Рейтинг товара {product_id} пересчитан: {rating} ({num_reviews} отзывов)")
    return rating, num_reviews
