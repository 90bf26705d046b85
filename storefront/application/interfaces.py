from abc import ABC, abstractmethod
from datetime import datetime
from decimal import Decimal
from typing import Optional, List
from storefront.domain.models import (
    Cart, CurrentUser, Order, OrderStatus, PaymentStatus, Product, Review,
)


class OrderRepository(ABC):
    @abstractmethod
    async def get_by_id(self, order_id: str) -> Optional[Order]:
        pass

    @abstractmethod
    async def order_number_exists(self, order_number: str) -> bool:
        pass

    @abstractmethod
    async def create(self, order: Order) -> None:
        pass

    @abstractmethod
    async def compare_and_set_status(self, order_id: str, expected: OrderStatus, values: dict) -> bool:
        """Обновляет поля только если статус не изменился с момента чтения"""
        pass

    @abstractmethod
    async def update_payment_status(self, order_id: str, payment_status: PaymentStatus,
                                    paid_at: Optional[datetime]) -> None:
        pass

    @abstractmethod
    async def list_page(self, page: int, limit: int, user_id: Optional[str] = None,
                        status: Optional[OrderStatus] = None, search: Optional[str] = None) -> tuple[List[Order], int]:
        pass

    @abstractmethod
    async def has_delivered_purchase(self, user_id: str, product_id: str) -> bool:
        pass


class CatalogRepository(ABC):
    @abstractmethod
    async def get_by_id(self, product_id: str) -> Optional[Product]:
        pass

    @abstractmethod
    async def get_for_update(self, product_id: str) -> Optional[Product]:
        """Читает товар с блокировкой строки до конца транзакции"""
        pass

    @abstractmethod
    async def add(self, product: Product) -> None:
        pass

    @abstractmethod
    async def consume_stock(self, product_id: str, quantity: int) -> bool:
        pass

    @abstractmethod
    async def release_stock(self, product_id: str, quantity: int) -> None:
        pass

    @abstractmethod
    async def update_rating(self, product_id: str, rating: float, num_reviews: int) -> None:
        pass


class CartRepository(ABC):
    @abstractmethod
    async def get_by_user(self, user_id: str) -> Optional[Cart]:
        pass

    @abstractmethod
    async def save(self, cart: Cart) -> None:
        pass

    @abstractmethod
    async def clear(self, cart_id: str) -> None:
        pass


class ReviewRepository(ABC):
    @abstractmethod
    async def get_by_id(self, review_id: str) -> Optional[Review]:
        pass

    @abstractmethod
    async def get_by_user_and_product(self, user_id: str, product_id: str) -> Optional[Review]:
        pass

    @abstractmethod
    async def create(self, review: Review) -> None:
        pass

    @abstractmethod
    async def update(self, review: Review) -> None:
        pass

    @abstractmethod
    async def delete(self, review_id: str) -> None:
        pass

    @abstractmethod
    async def ratings_for_product(self, product_id: str) -> List[int]:
        pass

    @abstractmethod
    async def list_page(self, page: int, limit: int, product_id: Optional[str] = None,
                        user_id: Optional[str] = None) -> tuple[List[Review], int]:
        pass


class UnitOfWork(ABC):
    @property
    @abstractmethod
    def orders(self) -> OrderRepository:
        pass

    @property
    @abstractmethod
    def catalog(self) -> CatalogRepository:
        pass

    @property
    @abstractmethod
    def carts(self) -> CartRepository:
        pass

    @property
    @abstractmethod
    def reviews(self) -> ReviewRepository:
        pass

    @property
    @abstractmethod
    def stats(self) -> "StatsRepository":
        pass

    @abstractmethod
    async def __call__(self):
        pass

    @abstractmethod
    async def commit(self):
        pass

    @abstractmethod
    async def rollback(self):
        pass


class IdentityService(ABC):
    @abstractmethod
    async def get_current_user(self, token: str) -> Optional[CurrentUser]:
        pass


class StatsRepository(ABC):
    @abstractmethod
    async def count_orders(self, status: Optional[OrderStatus] = None, since: Optional[datetime] = None) -> int:
        pass

    @abstractmethod
    async def revenue(self, since: Optional[datetime] = None, until: Optional[datetime] = None) -> Decimal:
        """Сумма total_price заказов delivered + paid, created_at в [since, until)"""
        pass

    @abstractmethod
    async def count_products(self, active: Optional[bool] = None, out_of_stock: bool = False) -> int:
        pass

    @abstractmethod
    async def count_reviews(self, since: Optional[datetime] = None) -> int:
        pass
