"""
Tickets store and the shared ticket taxonomy (device types, brands, models, tasks)
"""

import logging
from typing import Any, List, Mapping, Optional, Union

from ..config import Collections
from ..core.numbering import generate_ticket_number
from ..exceptions import RemoteServiceError
from ..models import DeviceModel, Ticket, TicketSettings, TicketStatus
from .base import BaseStore

logger = logging.getLogger(__name__)

STATUS_FILTERS = ("all",) + tuple(s.value for s in TicketStatus)


class TicketsStore(BaseStore[Ticket]):
    collection = Collections.TICKETS
    model = Ticket
    noun = "ticket"
    plural = "tickets"

    def __init__(self, remote):
        super().__init__(remote)
        self.settings = TicketSettings()
        self.filter_status = "all"

    @property
    def tickets(self) -> List[Ticket]:
        return self.items

    def reset(self) -> None:
        super().reset()
        self.settings = TicketSettings()

    # ===== FILTERS =====

    def set_filter_status(self, status: str) -> None:
        if status not in STATUS_FILTERS:
            raise ValueError(f"Unknown ticket status filter: {status}")
        self.filter_status = status

    def filtered_tickets(self) -> List[Ticket]:
        if self.filter_status == "all":
            return list(self.items)
        return [t for t in self.items if t.status == self.filter_status]

    # ===== TICKETS =====

    async def fetch_tickets(self) -> bool:
        """Every ticket; the caller decides whether the session may see them all"""
        return await self._fetch()

    async def fetch_technician_tickets(self, technician_id: str) -> bool:
        return await self._fetch({"technician_id": technician_id},
                                 message="Failed to fetch technician tickets")

    async def add_ticket(self, ticket: Union[Mapping[str, Any], Ticket]) -> str:
        """Create a ticket with a generated ticket number; returns the new id, or '' on failure"""
        ticket_number = generate_ticket_number()
        if any(t.ticket_number == ticket_number for t in self.items):
            # display numbers may collide, the database id stays unique
            logger.warning(f"Ticket number {ticket_number} already used by another ticket")
        created = await self._create(ticket, ticket_number=ticket_number)
        return created.id if created else ""

    async def update_ticket(self, ticket_id: str, data: Union[Mapping[str, Any], Ticket]) -> bool:
        return await self._update(ticket_id, data)

    async def assign_ticket(self, ticket_id: str, technician_id: str) -> bool:
        return await self._update(ticket_id, {"technician_id": technician_id},
                                  message="Failed to assign ticket")

    async def delete_ticket(self, ticket_id: str) -> bool:
        return await self._delete(ticket_id)

    # ===== TAXONOMY =====

    def models_for_brand(self, brand: str) -> List[DeviceModel]:
        return [m for m in self.settings.models if m.brand_id == brand]

    async def fetch_settings(self) -> bool:
        self._begin()
        try:
            device_types = await self.remote.select(Collections.DEVICE_TYPES)
            brands = await self.remote.select(Collections.BRANDS)
            models = await self.remote.select(Collections.MODELS)
            tasks = await self.remote.select(Collections.TASKS)
        except RemoteServiceError as e:
            self._fail("Failed to fetch settings", e)
            return False
        self.settings = TicketSettings(
            device_types=[row["name"] for row in device_types],
            brands=[row["name"] for row in brands],
            models=[DeviceModel(id=str(row["id"]), name=row["name"], brand_id=row["brand_id"]) for row in models],
            tasks=[row["name"] for row in tasks],
        )
        self.loading = False
        return True

    async def _add_term(self, collection: str, attr: str, value: str, label: str) -> bool:
        terms: List[str] = getattr(self.settings, attr)
        if value in terms:
            return True
        try:
            await self.remote.insert(collection, {"name": value})
        except RemoteServiceError as e:
            self._fail(f"Failed to add {label}", e)
            return False
        terms.append(value)
        return True

    async def _remove_term(self, collection: str, attr: str, value: str, label: str) -> bool:
        try:
            await self.remote.delete_where(collection, "name", value)
        except RemoteServiceError as e:
            self._fail(f"Failed to remove {label}", e)
            return False
        setattr(self.settings, attr, [t for t in getattr(self.settings, attr) if t != value])
        return True

    async def _rename_term(self, collection: str, attr: str, old: str, new: str, label: str) -> bool:
        terms: List[str] = getattr(self.settings, attr)
        if old == new:
            return True
        if self._rename_collides(terms, old, new, label):
            return False
        try:
            await self.remote.update_where(collection, "name", old, {"name": new})
        except RemoteServiceError as e:
            self._fail(f"Failed to update {label}", e)
            return False
        setattr(self.settings, attr, [new if t == old else t for t in terms])
        return True

    def _rename_collides(self, terms: List[str], old: str, new: str, label: str) -> bool:
        """Terms are a set: renaming onto an existing term is refused"""
        if new not in terms:
            return False
        logger.warning(f"Refusing to rename {label} {old!r}: {new!r} already exists")
        self.error = f"{label.capitalize()} {new} already exists"
        return True

    async def add_device_type(self, device_type: str) -> bool:
        return await self._add_term(Collections.DEVICE_TYPES, "device_types", device_type, "device type")

    async def remove_device_type(self, device_type: str) -> bool:
        return await self._remove_term(Collections.DEVICE_TYPES, "device_types", device_type, "device type")

    async def update_device_type(self, old_type: str, new_type: str) -> bool:
        return await self._rename_term(Collections.DEVICE_TYPES, "device_types", old_type, new_type, "device type")

    async def add_brand(self, brand: str) -> bool:
        return await self._add_term(Collections.BRANDS, "brands", brand, "brand")

    async def remove_brand(self, brand: str) -> bool:
        """Remove a brand together with its models"""
        try:
            await self.remote.delete_where(Collections.BRANDS, "name", brand)
        except RemoteServiceError as e:
            self._fail("Failed to remove brand", e)
            return False
        try:
            await self.remote.delete_where(Collections.MODELS, "brand_id", brand)
        except RemoteServiceError as e:
            # put the brand back so its models are not orphaned
            await self._compensate(self.remote.insert(Collections.BRANDS, {"name": brand}), f"restore brand {brand}")
            self._fail("Failed to remove brand", e)
            return False
        self.settings.brands = [b for b in self.settings.brands if b != brand]
        self.settings.models = [m for m in self.settings.models if m.brand_id != brand]
        return True

    async def update_brand(self, old_brand: str, new_brand: str) -> bool:
        """
        Rename a brand and re-point its models.

        Tickets keep the brand name they were recorded with. When the models
        cannot be re-pointed the brand rename is undone.
        """
        if old_brand == new_brand:
            return True
        if self._rename_collides(self.settings.brands, old_brand, new_brand, "brand"):
            return False
        try:
            await self.remote.update_where(Collections.BRANDS, "name", old_brand, {"name": new_brand})
        except RemoteServiceError as e:
            self._fail("Failed to update brand", e)
            return False
        try:
            await self.remote.update_where(Collections.MODELS, "brand_id", old_brand, {"brand_id": new_brand})
        except RemoteServiceError as e:
            await self._compensate(
                self.remote.update_where(Collections.BRANDS, "name", new_brand, {"name": old_brand}),
                f"rename brand {new_brand} back to {old_brand}",
            )
            self._fail("Failed to update brand", e)
            return False
        self.settings.brands = [new_brand if b == old_brand else b for b in self.settings.brands]
        self.settings.models = [
            m.model_copy(update={"brand_id": new_brand}) if m.brand_id == old_brand else m
            for m in self.settings.models
        ]
        return True

    @staticmethod
    async def _compensate(call, description: str) -> None:
        try:
            await call
        except RemoteServiceError as e:
            logger.error(f"❌ Could not {description}: {e}")

    async def add_model(self, name: str, brand_id: str) -> Optional[str]:
        try:
            row = await self.remote.insert(Collections.MODELS, {"name": name, "brand_id": brand_id})
        except RemoteServiceError as e:
            self._fail("Failed to add model", e)
            return None
        model = DeviceModel(id=str(row["id"]), name=name, brand_id=brand_id)
        self.settings.models.append(model)
        return model.id

    async def remove_model(self, model_id: str) -> bool:
        try:
            await self.remote.delete(Collections.MODELS, model_id)
        except RemoteServiceError as e:
            self._fail("Failed to remove model", e)
            return False
        self.settings.models = [m for m in self.settings.models if m.id != model_id]
        return True

    async def update_model(self, model_id: str, name: str) -> bool:
        try:
            stored = await self.remote.update(Collections.MODELS, model_id, {"name": name})
        except RemoteServiceError as e:
            self._fail("Failed to update model", e)
            return False
        if stored is None:
            self.error = "Model not found"
            return False
        self.settings.models = [
            m.model_copy(update={"name": name}) if m.id == model_id else m
            for m in self.settings.models
        ]
        return True

    async def add_task(self, task: str) -> bool:
        return await self._add_term(Collections.TASKS, "tasks", task, "task")

    async def remove_task(self, task: str) -> bool:
        return await self._remove_term(Collections.TASKS, "tasks", task, "task")

    async def update_task(self, old_task: str, new_task: str) -> bool:
        return await self._rename_term(Collections.TASKS, "tasks", old_task, new_task, "task")
