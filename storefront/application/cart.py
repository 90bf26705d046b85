import logging
import uuid

from storefront.domain.models import Cart, CartItem
from storefront.domain.exceptions import (
    CartNotFoundError, InsufficientStockError, NotFoundError, ProductNotFoundError, ProductUnavailableError,
)

logger = logging.getLogger(__name__)


class GetCartUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, user_id: str) -> Cart:
        async with self._uow() as uow:
            cart = await uow.carts.get_by_user(user_id)
            if not cart:
                cart = Cart(id=str(uuid.uuid4()), user_id=user_id)
                await uow.carts.save(cart)
                await uow.commit()
            return cart


class AddToCartUseCase:
    """Добавляет товар; цена позиции фиксируется по текущей цене со скидкой"""

    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, user_id: str, product_id: str, quantity: int = 1) -> Cart:
        async with self._uow() as uow:
            product = await uow.catalog.get_by_id(product_id)
            if not product:
                raise ProductNotFoundError(f"Товар {product_id} не существует")
            if not product.is_active:
                raise ProductUnavailableError(product.name)
            if product.stock < quantity:
                raise InsufficientStockError(product.name, product.stock, quantity)

            cart = await uow.carts.get_by_user(user_id)
            if not cart:
                cart = Cart(id=str(uuid.uuid4()), user_id=user_id)

            price = product.final_price
            existing = cart.find_item(product_id)
            if existing:
                new_quantity = existing.quantity + quantity
                if product.stock < new_quantity:
                    raise InsufficientStockError(product.name, product.stock, new_quantity)
                existing.quantity = new_quantity
                existing.unit_price = price
            else:
                cart.items.append(CartItem(product_id=product_id, quantity=quantity, unit_price=price))

            await uow.carts.save(cart)
            await uow.commit()

        logger.info(f"Товар {product_id} x{quantity} добавлен в корзину {user_id}")
        return cart


class UpdateCartItemUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, user_id: str, product_id: str, quantity: int) -> Cart:
        async with self._uow() as uow:
            cart = await uow.carts.get_by_user(user_id)
            if not cart:
                raise CartNotFoundError("Корзина не найдена")

            item = cart.find_item(product_id)
            if not item:
                raise NotFoundError("Товара нет в корзине")

            if quantity <= 0:
                cart.items.remove(item)
            else:
                product = await uow.catalog.get_by_id(product_id)
                if not product:
                    raise ProductNotFoundError(f"Товар {product_id} не существует")
                if product.stock < quantity:
                    raise InsufficientStockError(product.name, product.stock, quantity)
                item.quantity = quantity

            await uow.carts.save(cart)
            await uow.commit()
            return cart


class RemoveFromCartUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, user_id: str, product_id: str) -> Cart:
        async with self._uow() as uow:
            cart = await uow.carts.get_by_user(user_id)
            if not cart:
                raise CartNotFoundError("Корзина не найдена")
            cart.items = [item for item in cart.items if item.product_id != product_id]
            await uow.carts.save(cart)
            await uow.commit()
            return cart


class ClearCartUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, user_id: str) -> Cart:
        async with self._uow() as uow:
            cart = await uow.carts.get_by_user(user_id)
            if not cart:
                raise CartNotFoundError("Корзина не найдена")
            await uow.carts.clear(cart.id)
            await uow.commit()
            cart.items = []
            return cart
