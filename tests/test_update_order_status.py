import pytest

from storefront.application.update_order_status import UpdateOrderStatusUseCase, UpdatePaymentStatusUseCase
from storefront.domain.exceptions import InvalidStateError, OrderNotFoundError
from storefront.domain.models import OrderStatus, PaymentStatus


@pytest.fixture
async def placed(add_product, add_to_cart, place_order):
    product = await add_product(stock=5)
    await add_to_cart(product, 2)
    order = await place_order()
    return product, order


class TestAdminUpdateStatus:
    async def test_delivered_marks_order_paid(self, uow, placed, get_order):
        _, order = placed

        result = await UpdateOrderStatusUseCase(uow)(order.id, OrderStatus.DELIVERED)

        assert result.payment_status == PaymentStatus.PAID
        stored = await get_order(order.id)
        assert stored.status == OrderStatus.DELIVERED
        assert stored.payment_status == PaymentStatus.PAID
        assert stored.paid_at is not None
        assert stored.delivered_at is not None

    async def test_processing_has_no_side_effects(self, uow, placed, get_order, get_product):
        product, order = placed

        await UpdateOrderStatusUseCase(uow)(order.id, OrderStatus.PROCESSING)

        stored = await get_order(order.id)
        assert stored.status == OrderStatus.PROCESSING
        assert stored.payment_status == PaymentStatus.PENDING
        assert stored.delivered_at is None
        assert (await get_product(product.id)).stock == 3

    async def test_admin_cancel_of_shipped_order_restores_stock(self, uow, placed, get_order, get_product):
        product, order = placed
        await UpdateOrderStatusUseCase(uow)(order.id, OrderStatus.SHIPPED)

        await UpdateOrderStatusUseCase(uow)(order.id, OrderStatus.CANCELLED)

        after = await get_product(product.id)
        assert (after.stock, after.sold) == (5, 0)
        stored = await get_order(order.id)
        assert stored.status == OrderStatus.CANCELLED
        assert stored.cancelled_at is not None

    async def test_admin_cancel_twice_is_rejected(self, uow, placed, get_product):
        product, order = placed
        await UpdateOrderStatusUseCase(uow)(order.id, OrderStatus.CANCELLED)

        with pytest.raises(InvalidStateError):
            await UpdateOrderStatusUseCase(uow)(order.id, OrderStatus.CANCELLED)

        assert (await get_product(product.id)).stock == 5

    async def test_cancelled_order_cannot_be_reopened(self, uow, placed):
        _, order = placed
        await UpdateOrderStatusUseCase(uow)(order.id, OrderStatus.CANCELLED)

        with pytest.raises(InvalidStateError):
            await UpdateOrderStatusUseCase(uow)(order.id, OrderStatus.PENDING)

    async def test_override_allows_delivered_back_to_pending(self, uow, placed, get_order, get_product):
        product, order = placed
        await UpdateOrderStatusUseCase(uow)(order.id, OrderStatus.DELIVERED)

        await UpdateOrderStatusUseCase(uow)(order.id, OrderStatus.PENDING)

        stored = await get_order(order.id)
        assert stored.status == OrderStatus.PENDING
        # оплата и склад не откатываются
        assert stored.payment_status == PaymentStatus.PAID
        assert (await get_product(product.id)).stock == 3

    async def test_strict_mode_rejects_undeclared_edge(self, uow, placed, get_order):
        _, order = placed
        await UpdateOrderStatusUseCase(uow, strict_transitions=True)(order.id, OrderStatus.DELIVERED)

        with pytest.raises(InvalidStateError):
            await UpdateOrderStatusUseCase(uow, strict_transitions=True)(order.id, OrderStatus.PENDING)

        assert (await get_order(order.id)).status == OrderStatus.DELIVERED

    async def test_same_status_keeps_timestamps(self, uow, placed, get_order):
        _, order = placed
        await UpdateOrderStatusUseCase(uow)(order.id, OrderStatus.DELIVERED)
        first = await get_order(order.id)

        await UpdateOrderStatusUseCase(uow)(order.id, OrderStatus.DELIVERED)

        second = await get_order(order.id)
        assert second.delivered_at == first.delivered_at
        assert second.paid_at == first.paid_at

    async def test_delivered_again_restores_paid(self, uow, placed, get_order):
        _, order = placed
        await UpdateOrderStatusUseCase(uow)(order.id, OrderStatus.DELIVERED)
        first = await get_order(order.id)
        await UpdatePaymentStatusUseCase(uow)(order.id, PaymentStatus.FAILED)

        result = await UpdateOrderStatusUseCase(uow)(order.id, OrderStatus.DELIVERED)

        assert result.payment_status == PaymentStatus.PAID
        stored = await get_order(order.id)
        assert stored.status == OrderStatus.DELIVERED
        assert stored.payment_status == PaymentStatus.PAID
        assert stored.paid_at == first.paid_at
        assert stored.delivered_at == first.delivered_at

    async def test_unknown_order(self, uow):
        with pytest.raises(OrderNotFoundError):
            await UpdateOrderStatusUseCase(uow)("missing", OrderStatus.SHIPPED)


class TestAdminUpdatePaymentStatus:
    async def test_paid_sets_paid_at(self, uow, placed, get_order):
        _, order = placed

        await UpdatePaymentStatusUseCase(uow)(order.id, PaymentStatus.PAID)

        stored = await get_order(order.id)
        assert stored.payment_status == PaymentStatus.PAID
        assert stored.paid_at is not None
        assert stored.status == OrderStatus.PENDING

    async def test_failed_does_not_touch_stock(self, uow, placed, get_order, get_product):
        product, order = placed

        await UpdatePaymentStatusUseCase(uow)(order.id, PaymentStatus.FAILED)

        stored = await get_order(order.id)
        assert stored.payment_status == PaymentStatus.FAILED
        assert stored.paid_at is None
        assert (await get_product(product.id)).stock == 3

    async def test_unknown_order(self, uow):
        with pytest.raises(OrderNotFoundError):
            await UpdatePaymentStatusUseCase(uow)("missing", PaymentStatus.PAID)
