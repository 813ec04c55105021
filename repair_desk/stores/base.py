"""
Shared behaviour of the domain stores.

A store mirrors one remote collection in memory. Every operation talks to the
remote first and only reconciles local state after the call resolves. Failures
never propagate: they are logged, recorded in ``error`` and reported through a
falsy return value.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Generic, List, Mapping, Optional, Set, Type, TypeVar, Union

from pydantic import BaseModel, ValidationError

from ..exceptions import RemoteServiceError
from ..models import Document
from ..services.remote import RemoteDataService

logger = logging.getLogger(__name__)

DocumentT = TypeVar("DocumentT", bound=Document)

Payload = Union[Mapping[str, Any], BaseModel]

# Fields owned by the remote side; never taken from a caller's patch
_SERVER_FIELDS = {"id", "created_at", "updated_at"}


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def as_dict(payload: Payload) -> Dict[str, Any]:
    if isinstance(payload, BaseModel):
        return payload.model_dump(exclude_unset=True)
    return dict(payload)


class BaseStore(Generic[DocumentT]):
    """In-memory mirror of one remote collection"""

    collection: str = ""
    model: Type[DocumentT]
    noun: str = "record"
    plural: str = "records"

    def __init__(self, remote: RemoteDataService):
        self.remote = remote
        self.items: List[DocumentT] = []
        self.loading = False
        self.error: Optional[str] = None
        # ids whose timestamps are local wall-clock values until the next fetch
        self.provisional_ids: Set[str] = set()

    # ===== STATE HELPERS =====

    def clear_error(self) -> None:
        self.error = None

    def reset(self) -> None:
        """Drop cached records (used when the session ends)"""
        self.items = []
        self.loading = False
        self.error = None
        self.provisional_ids.clear()

    def get(self, doc_id: str) -> Optional[DocumentT]:
        return next((item for item in self.items if item.id == doc_id), None)

    def _begin(self) -> None:
        self.loading = True
        self.error = None

    def _fail(self, message: str, exc: Exception) -> None:
        logger.error(f"❌ {message}: {exc}")
        self.error = message
        self.loading = False

    def _from_remote(self, row: Mapping[str, Any]) -> DocumentT:
        data = dict(row)
        data["id"] = str(data.get("id", ""))
        return self.model.model_validate(data)

    # ===== GENERIC CRUD =====

    async def _fetch(self, filters: Optional[Dict[str, Any]] = None, message: Optional[str] = None) -> bool:
        self._begin()
        try:
            rows = await self.remote.select(self.collection, filters)
            records = [self._from_remote(row) for row in rows]
        except (RemoteServiceError, ValidationError) as e:
            # keep the previous list: stale but available
            self._fail(message or f"Failed to fetch {self.plural}", e)
            return False
        self.items = records
        self.provisional_ids.clear()
        self.loading = False
        logger.info(f"✅ Fetched {len(records)} {self.plural}")
        return True

    async def _create(self, payload: Payload, message: Optional[str] = None,
                      **overrides: Any) -> Optional[DocumentT]:
        message = message or f"Failed to add {self.noun}"
        self._begin()
        try:
            data = {k: v for k, v in as_dict(payload).items() if k not in _SERVER_FIELDS}
            data.update(overrides)
            record = self.model.model_validate(data)
        except ValidationError as e:
            self._fail(f"Invalid {self.noun}", e)
            return None
        try:
            row = await self.remote.insert(self.collection, record.to_remote())
        except RemoteServiceError as e:
            self._fail(message, e)
            return None
        created = self._reconcile_created(record, row)
        self.items.append(created)
        self.loading = False
        logger.info(f"✅ Added {self.noun} {created.id}")
        return created

    def _reconcile_created(self, record: DocumentT, row: Mapping[str, Any]) -> DocumentT:
        updates: Dict[str, Any] = {"id": str(row["id"])}
        provisional = False
        for field in ("created_at", "updated_at"):
            if field not in self.model.model_fields:
                continue
            server_value = row.get(field)
            if server_value:
                updates[field] = server_value.isoformat() if isinstance(server_value, datetime) else server_value
            else:
                updates[field] = now_iso()
                provisional = True
        if provisional:
            self.provisional_ids.add(updates["id"])
        return record.model_copy(update=updates)

    async def _update(self, doc_id: str, patch: Payload, message: Optional[str] = None) -> bool:
        message = message or f"Failed to update {self.noun}"
        self._begin()
        changes = {k: v for k, v in as_dict(patch).items()
                   if k in self.model.model_fields and k not in _SERVER_FIELDS}
        current = self.get(doc_id)
        cached = current is not None
        try:
            if current is None:
                # validate against the stored record so derived fields stay consistent
                row = await self.remote.get(self.collection, doc_id)
                if row is None:
                    return self._not_found(doc_id)
                current = self._from_remote(row)
            merged = self.model.model_validate({**current.model_dump(), **changes})
            remote_patch = self._diff(current, merged, changes)
        except ValidationError as e:
            self._fail(f"Invalid {self.noun}", e)
            return False
        except RemoteServiceError as e:
            self._fail(message, e)
            return False
        try:
            stored = await self.remote.update(self.collection, doc_id, remote_patch)
        except RemoteServiceError as e:
            self._fail(message, e)
            return False
        if stored is None:
            return self._not_found(doc_id)
        if cached:
            if "updated_at" in self.model.model_fields:
                merged = merged.model_copy(update={"updated_at": now_iso()})
                self.provisional_ids.add(doc_id)
            self.items = [merged if item.id == doc_id else item for item in self.items]
        self.loading = False
        return True

    def _not_found(self, doc_id: str) -> bool:
        logger.error(f"❌ {self.noun.capitalize()} {doc_id} not found")
        self.error = f"{self.noun.capitalize()} not found"
        self.loading = False
        return False

    @staticmethod
    def _diff(current: Document, merged: Document, changes: Mapping[str, Any]) -> Dict[str, Any]:
        """Fields to send: everything the caller set plus anything the model derived from it"""
        before = current.model_dump(mode="json")
        after = merged.model_dump(mode="json")
        keys = set(changes) | {k for k in after if after[k] != before.get(k)}
        return {k: after[k] for k in keys if k not in _SERVER_FIELDS}

    async def _delete(self, doc_id: str, message: Optional[str] = None) -> bool:
        self._begin()
        try:
            await self.remote.delete(self.collection, doc_id)
        except RemoteServiceError as e:
            self._fail(message or f"Failed to delete {self.noun}", e)
            return False
        self.items = [item for item in self.items if item.id != doc_id]
        self.provisional_ids.discard(doc_id)
        self.loading = False
        logger.info(f"✅ Deleted {self.noun} {doc_id}")
        return True
