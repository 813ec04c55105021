"""
Orders store with cart and stock reservation.

Creating an order reserves stock for every catalogue item through the atomic
remote adjustment before the order is written. If any reservation fails, the
ones already made for that order are released and the order is rejected.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable, List, Mapping, Optional, Tuple, Union

from pydantic import ValidationError

from ..config import Collections
from ..core.billing import order_receipt, payment_status_for
from ..exceptions import InsufficientStockError, RemoteServiceError
from ..models import Order, OrderItem, OrderStatus, PaymentStatus
from .base import BaseStore
from .products import ProductsStore

logger = logging.getLogger(__name__)

# Items with this product id are free-form lines without inventory
CUSTOM_PRODUCT_ID = "custom"


class OrdersStore(BaseStore[Order]):
    collection = Collections.ORDERS
    model = Order
    noun = "order"
    plural = "orders"

    def __init__(self, remote, products: Optional[ProductsStore] = None,
                 delivery_days: int = 7, tax_rate: float = 0.20):
        super().__init__(remote)
        self.products = products
        self.delivery_days = delivery_days
        self.tax_rate = tax_rate
        self.cart: List[OrderItem] = []

    @property
    def orders(self) -> List[Order]:
        return self.items

    def reset(self) -> None:
        super().reset()
        self.cart = []

    # ===== CART =====

    def add_to_cart(self, product_id: str, quantity: int) -> bool:
        """Put a product in the cart, replacing any previous quantity"""
        try:
            item = OrderItem(product_id=product_id, quantity=quantity)
        except ValidationError as e:
            logger.error(f"❌ Invalid cart item {product_id}: {e}")
            self.error = "Invalid cart item"
            return False
        self.cart = [i for i in self.cart if i.product_id != product_id]
        self.cart.append(item)
        return True

    def remove_from_cart(self, product_id: str) -> None:
        self.cart = [item for item in self.cart if item.product_id != product_id]

    def clear_cart(self) -> None:
        self.cart = []

    # ===== ORDERS =====

    async def fetch_orders(self) -> bool:
        return await self._fetch()

    async def _reserve(self, items: Iterable[OrderItem]) -> List[Tuple[OrderItem, int]]:
        reserved: List[Tuple[OrderItem, int]] = []
        try:
            for item in items:
                if not item.product_id or item.product_id == CUSTOM_PRODUCT_ID:
                    continue
                new_stock = await self.remote.adjust_stock(item.product_id, -item.quantity)
                reserved.append((item, new_stock))
        except RemoteServiceError:
            await self._release(reserved)
            raise
        return reserved

    async def _release(self, reserved: List[Tuple[OrderItem, int]]) -> None:
        for item, _ in reversed(reserved):
            try:
                await self.remote.adjust_stock(item.product_id, item.quantity)
            except RemoteServiceError as e:
                logger.error(f"❌ Could not release {item.quantity} of {item.product_id}: {e}")

    async def create_order(self, client_id: str, total: float,
                           items: Optional[Iterable[Union[Mapping[str, Any], OrderItem]]] = None) -> str:
        """
        Create an order from items (or the cart) and take the items out of stock.

        Returns:
            The new order id, or '' when validation, stock or the remote write fails
        """
        self._begin()
        try:
            if items is None:
                order_items = list(self.cart)
            else:
                order_items = [OrderItem.model_validate(i) if not isinstance(i, OrderItem) else i for i in items]
            now = datetime.now(timezone.utc)
            order = Order(
                items=order_items,
                total=total,
                status=OrderStatus.PENDING,
                client_id=client_id,
                payment_method="cash",
                payment_status=PaymentStatus.NOT_PAID,
                amount_paid=0,
                order_date=now.isoformat(),
                delivery_date=(now + timedelta(days=self.delivery_days)).isoformat(),
            )
        except ValueError as e:
            self._fail("Invalid order", e)
            return ""

        try:
            reserved = await self._reserve(order_items)
        except InsufficientStockError as e:
            self._fail(f"Insufficient stock for product {e.product_id}", e)
            return ""
        except RemoteServiceError as e:
            self._fail("Failed to create order", e)
            return ""

        try:
            row = await self.remote.insert(self.collection, order.to_remote())
        except RemoteServiceError as e:
            await self._release(reserved)
            self._fail("Failed to create order", e)
            return ""

        if self.products is not None:
            for item, new_stock in reserved:
                self.products.apply_stock(item.product_id, new_stock)

        created = self._reconcile_created(order, row)
        self.items.append(created)
        if items is None:
            self.cart = []
        self.loading = False
        logger.info(f"✅ Created order {created.id} for client {client_id}")
        return created.id

    async def update_order(self, order_id: str, data: Union[Mapping[str, Any], Order]) -> bool:
        return await self._update(order_id, data)

    async def update_order_status(self, order_id: str, status: str) -> bool:
        return await self._update(order_id, {"status": status}, message="Failed to update order status")

    async def record_payment(self, order_id: str, amount: float) -> bool:
        """Add a payment and derive the payment status from the receipt total"""
        order = self.get(order_id)
        if order is None:
            self.error = "Order not found"
            return False
        amount_paid = round(order.amount_paid + amount, 2)
        receipt = order_receipt(order, tax_rate=self.tax_rate)
        status = payment_status_for(receipt.total, amount_paid)
        return await self._update(
            order_id,
            {"amount_paid": amount_paid, "payment_status": status},
            message="Failed to record payment",
        )

    async def delete_order(self, order_id: str) -> bool:
        return await self._delete(order_id)
