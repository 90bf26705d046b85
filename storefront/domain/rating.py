from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable


def compute_rating(ratings: Iterable[int]) -> tuple[float, int]:
    """Средняя оценка (округление до 0.1) и количество отзывов"""
    ratings = list(ratings)
    if not ratings:
        return 0.0, 0
    mean = Decimal(sum(ratings)) / Decimal(len(ratings))
    return float(mean.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)), len(ratings)
