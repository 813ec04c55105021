"""
Remote Data Service for the back-office stores
Wraps the Supabase async client: whole-collection reads, equality-filtered reads,
single-document writes, merge-upserts and the atomic stock adjustment.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

from supabase import AsyncClient, acreate_client

from ..config import Collections, Settings, get_settings
from ..exceptions import InsufficientStockError, RemoteServiceError, RemoteTimeoutError

logger = logging.getLogger(__name__)


class RemoteDataService:
    """Document-collection facade over the hosted database"""

    def __init__(self, client: AsyncClient, timeout: float = 15.0):
        self.client = client
        self.timeout = timeout

    @classmethod
    async def connect(cls, settings: Optional[Settings] = None) -> "RemoteDataService":
        """Create the Supabase client from settings"""
        settings = settings or get_settings()
        settings.require_supabase()
        client = await acreate_client(settings.SUPABASE_URL, settings.SUPABASE_ANON_KEY)
        logger.info(f"✅ Remote data service initialized: {settings.SUPABASE_URL}")
        return cls(client, timeout=settings.REMOTE_TIMEOUT_SECONDS)

    async def _execute(self, request, collection: str, operation: str):
        try:
            response = await asyncio.wait_for(request.execute(), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            raise RemoteTimeoutError(
                f"{operation} on {collection} timed out after {self.timeout}s",
                collection=collection,
                operation=operation,
            ) from e
        except RemoteServiceError:
            raise
        except Exception as e:
            raise RemoteServiceError(str(e), collection=collection, operation=operation) from e
        return response.data

    # ===== READS =====

    async def select(self, collection: str, filters: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        """Read a whole collection, or the rows matching every equality filter"""
        request = self.client.table(collection).select("*")
        for field, value in (filters or {}).items():
            request = request.eq(field, value)
        rows = await self._execute(request, collection, "select")
        return rows or []

    async def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        rows = await self.select(collection, {"id": doc_id})
        return rows[0] if rows else None

    # ===== WRITES =====

    async def insert(self, collection: str, data: Dict[str, Any]) -> Dict[str, Any]:
        """Insert one document and return the stored row (server id and timestamps included)"""
        request = self.client.table(collection).insert(data)
        rows = await self._execute(request, collection, "insert")
        if not rows:
            raise RemoteServiceError("Insert returned no row", collection=collection, operation="insert")
        return rows[0]

    async def update(self, collection: str, doc_id: str, data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        request = self.client.table(collection).update(data).eq("id", doc_id)
        rows = await self._execute(request, collection, "update")
        return rows[0] if rows else None

    async def update_where(self, collection: str, field: str, value: Any, data: Dict[str, Any]) -> int:
        """Update every row whose field equals value; returns the number of rows touched"""
        request = self.client.table(collection).update(data).eq(field, value)
        rows = await self._execute(request, collection, "update_where")
        return len(rows or [])

    async def upsert(self, collection: str, data: Dict[str, Any], on_conflict: str = "id") -> Dict[str, Any]:
        """Merge-write: columns not present in data are left untouched on an existing row"""
        request = self.client.table(collection).upsert(data, on_conflict=on_conflict)
        rows = await self._execute(request, collection, "upsert")
        return rows[0] if rows else data

    async def delete(self, collection: str, doc_id: str) -> None:
        request = self.client.table(collection).delete().eq("id", doc_id)
        await self._execute(request, collection, "delete")

    async def delete_where(self, collection: str, field: str, value: Any) -> int:
        request = self.client.table(collection).delete().eq(field, value)
        rows = await self._execute(request, collection, "delete_where")
        return len(rows or [])

    # ===== ATOMIC COUNTERS =====

    async def adjust_stock(self, product_id: str, delta: int) -> int:
        """
        Atomically add delta to a product's stock.

        Runs a single conditional UPDATE in the database, so concurrent orders
        cannot overwrite each other's decrement.

        Returns:
            The new stock level

        Raises:
            InsufficientStockError: If the new stock would be negative
        """
        request = self.client.rpc(Collections.ADJUST_STOCK_FN, {"p_product_id": product_id, "p_delta": delta})
        new_stock = await self._execute(request, Collections.PRODUCTS, "adjust_stock")
        if isinstance(new_stock, list):
            new_stock = new_stock[0] if new_stock else None
        if new_stock is None:
            raise InsufficientStockError(product_id, -delta)
        return int(new_stock)
