"""
Products store (inventory and categories)
"""

import logging
from typing import Any, List, Mapping, Optional, Union

from ..config import Collections
from ..exceptions import InsufficientStockError, RemoteServiceError
from ..models import Product
from .base import BaseStore

logger = logging.getLogger(__name__)


class ProductsStore(BaseStore[Product]):
    collection = Collections.PRODUCTS
    model = Product
    noun = "product"
    plural = "products"

    def __init__(self, remote):
        super().__init__(remote)
        self.categories: List[str] = []
        self.search_query = ""
        self.selected_category = "all"

    @property
    def products(self) -> List[Product]:
        return self.items

    def reset(self) -> None:
        super().reset()
        self.categories = []

    def set_search_query(self, query: str) -> None:
        self.search_query = query

    def set_selected_category(self, category: str) -> None:
        self.selected_category = category

    def filtered_products(self) -> List[Product]:
        needle = self.search_query.strip().lower()
        return [
            p for p in self.items
            if (not needle or needle in p.name.lower() or needle in p.description.lower())
            and (self.selected_category == "all" or p.category == self.selected_category)
        ]

    def low_stock(self, threshold: int) -> List[Product]:
        return [p for p in self.items if p.stock < threshold]

    async def fetch_products(self) -> bool:
        return await self._fetch()

    async def fetch_categories(self) -> bool:
        self._begin()
        try:
            rows = await self.remote.select(Collections.CATEGORIES)
        except RemoteServiceError as e:
            self._fail("Failed to fetch categories", e)
            return False
        self.categories = [row["name"] for row in rows]
        self.loading = False
        return True

    async def _ensure_category(self, category: Optional[str]) -> None:
        if not category or category in self.categories:
            return
        try:
            await self.remote.insert(Collections.CATEGORIES, {"name": category})
        except RemoteServiceError as e:
            self._fail("Failed to add category", e)
            return
        self.categories.append(category)

    async def add_product(self, product: Union[Mapping[str, Any], Product]) -> str:
        """Create a product (and its category when new); returns the new id, or '' on failure"""
        created = await self._create(product)
        if created is None:
            return ""
        await self._ensure_category(created.category)
        return created.id

    async def update_product(self, product_id: str, data: Union[Mapping[str, Any], Product]) -> bool:
        if not await self._update(product_id, data):
            return False
        current = self.get(product_id)
        await self._ensure_category(current.category if current else None)
        return True

    async def delete_product(self, product_id: str) -> bool:
        return await self._delete(product_id)

    async def update_stock(self, product_id: str, quantity: int) -> bool:
        """Add quantity (negative to remove) to the stock with an atomic adjustment"""
        self._begin()
        try:
            new_stock = await self.remote.adjust_stock(product_id, quantity)
        except InsufficientStockError as e:
            self._fail("Insufficient stock", e)
            return False
        except RemoteServiceError as e:
            self._fail("Failed to update stock", e)
            return False
        self.apply_stock(product_id, new_stock)
        self.loading = False
        return True

    def apply_stock(self, product_id: str, stock: int) -> None:
        """Record a stock level confirmed by the remote side"""
        self.items = [
            p.model_copy(update={"stock": stock}) if p.id == product_id else p
            for p in self.items
        ]
