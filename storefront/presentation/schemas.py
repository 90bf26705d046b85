from datetime import datetime
from decimal import Decimal
from typing import Generic, List, Optional, TypeVar
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from storefront.domain.models import OrderStatus, PaymentMethod, PaymentStatus

T = TypeVar("T")


class CamelModel(BaseModel):
    """JSON в camelCase, в Python — snake_case"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, str_strip_whitespace=True)


class ApiResponse(CamelModel, Generic[T]):
    success: bool = True
    data: T


class FieldError(CamelModel):
    field: str
    message: str


class ErrorResponse(CamelModel):
    success: bool = False
    message: str
    errors: Optional[List[FieldError]] = None


class MessageResponse(CamelModel):
    message: str


# --- Orders ---

class ShippingAddressSchema(CamelModel):
    full_name: str = Field(min_length=2, max_length=100)
    phone: str = Field(pattern=r"^(0|\+84)[0-9]{9}$")
    street: str = Field(min_length=5, max_length=200)
    ward: Optional[str] = Field(default=None, max_length=100)
    district: Optional[str] = Field(default=None, max_length=100)
    city: str = Field(min_length=1, max_length=100)


class CreateOrderRequest(CamelModel):
    shipping_address: ShippingAddressSchema
    payment_method: PaymentMethod
    shipping_price: Optional[Decimal] = Field(default=None, ge=0)
    note: Optional[str] = Field(default=None, max_length=500)


class UpdateOrderStatusRequest(CamelModel):
    status: OrderStatus


class UpdatePaymentStatusRequest(CamelModel):
    payment_status: PaymentStatus


class UserSummary(CamelModel):
    id: str
    name: str
    email: str
    phone: str


class OrderItemResponse(CamelModel):
    product_id: str
    name: str
    image: str
    unit_price: float
    quantity: int


class OrderResponse(CamelModel):
    id: str
    order_number: str
    user_id: str
    user: Optional[UserSummary] = None
    items: List[OrderItemResponse]
    shipping_address: ShippingAddressSchema
    payment_method: PaymentMethod
    payment_status: PaymentStatus
    items_price: float
    shipping_price: float
    total_price: float
    status: OrderStatus
    note: Optional[str] = None
    paid_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_domain(cls, order, user=None):
        return cls(
            id=order.id,
            order_number=order.order_number,
            user_id=order.user_id,
            user=UserSummary(id=user.id, name=user.name, email=user.email, phone=user.phone) if user else None,
            items=[
                OrderItemResponse(
                    product_id=item.product_id,
                    name=item.name,
                    image=item.image,
                    unit_price=float(item.unit_price),
                    quantity=item.quantity
                )
                for item in order.items
            ],
            shipping_address=ShippingAddressSchema(**order.shipping_address.model_dump()),
            payment_method=order.payment_method,
            payment_status=order.payment_status,
            items_price=float(order.items_price),
            shipping_price=float(order.shipping_price),
            total_price=float(order.total_price),
            status=order.status,
            note=order.note,
            paid_at=order.paid_at,
            delivered_at=order.delivered_at,
            cancelled_at=order.cancelled_at,
            created_at=order.created_at,
            updated_at=order.updated_at
        )


class OrderListResponse(CamelModel):
    orders: List[OrderResponse]
    total_pages: int
    current_page: int
    total: int

    @classmethod
    def from_page(cls, page, user=None):
        return cls(
            orders=[OrderResponse.from_domain(order, user) for order in page.items],
            total_pages=page.total_pages,
            current_page=page.page,
            total=page.total
        )


# --- Cart ---

class AddToCartRequest(CamelModel):
    product_id: str = Field(min_length=1)
    quantity: int = Field(default=1, ge=1)


class UpdateCartItemRequest(CamelModel):
    quantity: int


class CartItemResponse(CamelModel):
    product_id: str
    quantity: int
    unit_price: float


class CartResponse(CamelModel):
    id: str
    user_id: str
    items: List[CartItemResponse]
    total_price: float

    @classmethod
    def from_domain(cls, cart):
        return cls(
            id=cart.id,
            user_id=cart.user_id,
            items=[
                CartItemResponse(product_id=item.product_id, quantity=item.quantity, unit_price=float(item.unit_price))
                for item in cart.items
            ],
            total_price=float(cart.total_price)
        )


# --- Reviews ---

class CreateReviewRequest(CamelModel):
    product_id: str = Field(min_length=1)
    rating: int = Field(ge=1, le=5, strict=True)
    comment: str = Field(min_length=1)


class UpdateReviewRequest(CamelModel):
    rating: Optional[int] = Field(default=None, ge=1, le=5, strict=True)
    comment: Optional[str] = None


class ReviewResponse(CamelModel):
    id: str
    user_id: str
    product_id: str
    rating: int
    comment: str
    is_verified_purchase: bool
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_domain(cls, review):
        return cls(**review.model_dump())


class ReviewListResponse(CamelModel):
    reviews: List[ReviewResponse]
    total_pages: int
    current_page: int
    total: int

    @classmethod
    def from_page(cls, page):
        return cls(
            reviews=[ReviewResponse.from_domain(review) for review in page.items],
            total_pages=page.total_pages,
            current_page=page.page,
            total=page.total
        )


# --- Admin ---

class OrderStatsResponse(CamelModel):
    total: int
    this_month: int
    pending: int
    processing: int


class RevenueStatsResponse(CamelModel):
    total: float
    this_month: float
    last_month: float
    growth: float


class ProductStatsResponse(CamelModel):
    total: int
    active: int
    out_of_stock: int


class ReviewStatsResponse(CamelModel):
    total: int
    this_month: int


class DashboardStatsResponse(CamelModel):
    orders: OrderStatsResponse
    revenue: RevenueStatsResponse
    products: ProductStatsResponse
    reviews: ReviewStatsResponse

    @classmethod
    def from_domain(cls, stats):
        return cls(
            orders=OrderStatsResponse(**stats.orders.model_dump()),
            revenue=RevenueStatsResponse(
                total=float(stats.revenue.total),
                this_month=float(stats.revenue.this_month),
                last_month=float(stats.revenue.last_month),
                growth=stats.revenue.growth
            ),
            products=ProductStatsResponse(**stats.products.model_dump()),
            reviews=ReviewStatsResponse(**stats.reviews.model_dump())
        )
