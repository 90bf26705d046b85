class DomainException(Exception):
    pass


class NotFoundError(DomainException):
    pass


class OrderNotFoundError(NotFoundError):
    pass


class ProductNotFoundError(NotFoundError):
    pass


class CartNotFoundError(NotFoundError):
    pass


class ReviewNotFoundError(NotFoundError):
    pass


class InvalidStateError(DomainException):
    pass


class ConcurrentUpdateError(InvalidStateError):
    """Параллельный запрос успел изменить те же данные"""
    def __init__(self, message: str = "Данные изменены параллельным запросом, повторите попытку"):
        super().__init__(message)


class ValidationError(DomainException):
    pass


class EmptyCartError(ValidationError):
    def __init__(self):
        super().__init__("Корзина пуста")


class ProductUnavailableError(ValidationError):
    def __init__(self, product_name: str):
        self.product_name = product_name
        super().__init__(f"Товар {product_name} больше не продаётся")


class InsufficientStockError(DomainException):
    def __init__(self, product_name: str, available: int, required: int):
        self.product_name = product_name
        self.available = available
        self.required = required
        super().__init__(
            f"Недостаточно товара {product_name}. Доступно: {available}, требуется: {required}"
        )


class DuplicateReviewError(ValidationError):
    def __init__(self):
        super().__init__("Вы уже оставили отзыв на этот товар")


class IdentityServiceError(DomainException):
    pass
