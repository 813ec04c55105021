"""
Clients store
"""

import logging
from typing import Any, List, Mapping, Union

from ..config import Collections
from ..exceptions import RemoteServiceError
from ..models import Client
from .base import BaseStore

logger = logging.getLogger(__name__)

# Collections holding a client_id reference
_REFERENCING_COLLECTIONS = (Collections.TICKETS, Collections.ORDERS, Collections.INVOICES)


class ClientsStore(BaseStore[Client]):
    collection = Collections.CLIENTS
    model = Client
    noun = "client"
    plural = "clients"

    def __init__(self, remote):
        super().__init__(remote)
        self.search_query = ""

    @property
    def clients(self) -> List[Client]:
        return self.items

    def set_search_query(self, query: str) -> None:
        self.search_query = query

    def filtered_clients(self) -> List[Client]:
        """Clients whose name, email or phone contains the search query"""
        needle = self.search_query.strip().lower()
        if not needle:
            return list(self.items)
        return [
            c for c in self.items
            if needle in c.name.lower() or needle in (c.email or "").lower() or needle in c.phone.lower()
        ]

    async def fetch_clients(self) -> bool:
        return await self._fetch()

    async def add_client(self, client: Union[Mapping[str, Any], Client]) -> str:
        """Create a client; returns the new id, or '' on failure"""
        created = await self._create(client)
        return created.id if created else ""

    async def update_client(self, client_id: str, data: Union[Mapping[str, Any], Client]) -> bool:
        return await self._update(client_id, data)

    async def delete_client(self, client_id: str) -> bool:
        """
        Delete a client that nothing references.

        Tickets, orders and invoices keep a client_id; a client still referenced
        by any of them is not deleted and the store error names the count.
        """
        self._begin()
        try:
            references = 0
            for collection in _REFERENCING_COLLECTIONS:
                references += len(await self.remote.select(collection, {"client_id": client_id}))
        except RemoteServiceError as e:
            self._fail("Failed to delete client", e)
            return False
        if references:
            logger.warning(f"Refusing to delete client {client_id}: {references} linked records")
            self.error = f"Client has {references} linked tickets, orders or invoices"
            self.loading = False
            return False
        return await self._delete(client_id)
