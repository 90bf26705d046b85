from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field


class OrderStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"


class PaymentMethod(str, Enum):
    COD = "cod"
    BANK_TRANSFER = "bank_transfer"


class UserRole(str, Enum):
    USER = "user"
    ADMIN = "admin"


class CurrentUser(BaseModel):
    """Пользователь из identity-сервиса"""
    id: str
    name: str = ""
    email: str = ""
    phone: str = ""
    role: UserRole = UserRole.USER

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


class Product(BaseModel):
    """Товар каталога. stock/sold/rating/num_reviews меняются только через движок заказов и пересчёт рейтинга"""
    id: str
    name: str
    images: list[str] = Field(default_factory=list)
    price: Decimal
    discount: int = 0
    stock: int = 0
    sold: int = 0
    rating: float = 0.0
    num_reviews: int = 0
    is_active: bool = True

    @property
    def final_price(self) -> Decimal:
        """Цена с учётом скидки"""
        if self.discount > 0:
            price = self.price * (Decimal(100) - Decimal(self.discount)) / Decimal(100)
        else:
            price = self.price
        return price.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)

    @property
    def primary_image(self) -> str:
        return self.images[0] if self.images else ""


class CartItem(BaseModel):
    product_id: str
    quantity: int = Field(ge=1)
    unit_price: Decimal


class Cart(BaseModel):
    id: str
    user_id: str
    items: list[CartItem] = Field(default_factory=list)
    updated_at: Optional[datetime] = None

    def find_item(self, product_id: str) -> Optional[CartItem]:
        for item in self.items:
            if item.product_id == product_id:
                return item
        return None

    @property
    def total_price(self) -> Decimal:
        return sum((item.unit_price * item.quantity for item in self.items), Decimal(0))


class ShippingAddress(BaseModel):
    full_name: str
    phone: str
    street: str
    ward: Optional[str] = None
    district: Optional[str] = None
    city: str


class OrderItem(BaseModel):
    """Снимок позиции заказа, не зависит от последующих изменений каталога и корзины"""
    product_id: str
    name: str
    image: str = ""
    unit_price: Decimal
    quantity: int = Field(ge=1)

    model_config = {"frozen": True}

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity


class Order(BaseModel):
    """Domain Entity — заказ. После создания меняются только статусы и временные метки"""
    id: str
    order_number: str
    user_id: str
    items: tuple[OrderItem, ...]
    shipping_address: ShippingAddress
    payment_method: PaymentMethod
    items_price: Decimal
    shipping_price: Decimal
    total_price: Decimal
    status: OrderStatus = OrderStatus.PENDING
    payment_status: PaymentStatus = PaymentStatus.PENDING
    note: Optional[str] = None
    paid_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    def can_be_cancelled_by_owner(self) -> bool:
        """Бизнес-правило: владелец может отменить только pending заказ"""
        return self.status == OrderStatus.PENDING

    def contains_product(self, product_id: str) -> bool:
        return any(item.product_id == product_id for item in self.items)


class Review(BaseModel):
    id: str
    user_id: str
    product_id: str
    rating: int = Field(ge=1, le=5)
    comment: str
    is_verified_purchase: bool = False
    created_at: datetime
    updated_at: datetime


class Page(BaseModel):
    """Страница результатов"""
    items: list
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        return (self.total + self.limit - 1) // self.limit


class OrderStats(BaseModel):
    total: int
    this_month: int
    pending: int
    processing: int


class RevenueStats(BaseModel):
    """Выручка: только доставленные и оплаченные заказы"""
    total: Decimal
    this_month: Decimal
    last_month: Decimal

    @property
    def growth(self) -> float:
        """Рост к прошлому месяцу в процентах; без выручки в прошлом месяце — 100"""
        if self.last_month > 0:
            percent = (self.this_month - self.last_month) / self.last_month * 100
            return float(percent.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))
        return 100.0


class ProductStats(BaseModel):
    total: int
    active: int
    out_of_stock: int


class ReviewStats(BaseModel):
    total: int
    this_month: int


class DashboardStats(BaseModel):
    orders: OrderStats
    revenue: RevenueStats
    products: ProductStats
    reviews: ReviewStats
