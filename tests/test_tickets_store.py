import random
from unittest.mock import patch

import pytest

from repair_desk.config import Collections
from repair_desk.core.numbering import NUMBER_PATTERN, generate_ticket_number
from repair_desk.stores import TicketsStore


def make_ticket(**overrides):
    ticket = {
        "client_id": "client-1",
        "device_type": "Smartphone",
        "brand": "Apple",
        "model": "iPhone 12",
        "tasks": ["Screen", "Battery"],
        "issue": "Cracked screen",
        "status": "pending",
        "cost": 0,
        "technician_id": "tech-1",
    }
    ticket.update(overrides)
    return ticket


class TestTicketsStore:
    """Unit tests for TicketsStore"""

    @pytest.fixture
    def store(self, remote):
        """Create TicketsStore backed by the in-memory remote"""
        return TicketsStore(remote)

    @pytest.mark.asyncio
    async def test_add_ticket_with_task_prices(self, store, remote):
        """Test the cost is the sum of the task prices"""
        ticket_id = await store.add_ticket(make_ticket(
            task_prices=[{"name": "Screen", "price": 80}, {"name": "Battery", "price": 40}],
            cost=999,
        ))

        ticket = store.get(ticket_id)
        assert ticket.cost == 120
        assert NUMBER_PATTERN.match(ticket.ticket_number)
        assert ticket.created_at is not None
        assert remote.collections[Collections.TICKETS][ticket_id]["cost"] == 120

    @pytest.mark.asyncio
    async def test_add_ticket_failure(self, store, remote):
        """Test a rejected insert returns an empty id"""
        remote.fail(Collections.TICKETS, "insert")

        assert await store.add_ticket(make_ticket()) == ""
        assert store.tickets == []
        assert store.error == "Failed to add ticket"

    @pytest.mark.asyncio
    async def test_update_task_prices_recomputes_cost(self, store, remote):
        """Test changing task prices keeps the cost equal to their sum"""
        ticket_id = await store.add_ticket(make_ticket(
            task_prices=[{"name": "Screen", "price": 80}, {"name": "Battery", "price": 40}],
        ))

        assert await store.update_ticket(ticket_id, {
            "task_prices": [{"name": "Screen", "price": 75.5}, {"name": "Battery", "price": 40}],
        }) is True

        assert store.get(ticket_id).cost == 115.5
        assert remote.collections[Collections.TICKETS][ticket_id]["cost"] == 115.5

    @pytest.mark.asyncio
    async def test_update_cost_ignored_with_task_prices(self, store):
        """Test a cost patch cannot break the task price total"""
        ticket_id = await store.add_ticket(make_ticket(task_prices=[{"name": "Screen", "price": 80}]))

        await store.update_ticket(ticket_id, {"cost": 10})

        assert store.get(ticket_id).cost == 80

    @pytest.mark.asyncio
    async def test_update_status_sets_updated_at(self, store):
        """Test an update stamps updated_at"""
        ticket_id = await store.add_ticket(make_ticket())

        assert await store.update_ticket(ticket_id, {"status": "in-progress"}) is True

        ticket = store.get(ticket_id)
        assert ticket.status == "in-progress"
        assert ticket.updated_at is not None
        assert ticket_id in store.provisional_ids

    @pytest.mark.asyncio
    async def test_invalid_status_is_rejected(self, store, remote):
        """Test an unknown status never reaches the remote side"""
        ticket_id = await store.add_ticket(make_ticket())

        assert await store.update_ticket(ticket_id, {"status": "lost"}) is False

        assert store.error == "Invalid ticket"
        assert remote.collections[Collections.TICKETS][ticket_id]["status"] == "pending"

    @pytest.mark.asyncio
    async def test_fetch_technician_tickets(self, store, remote):
        """Test a technician only receives the tickets assigned to them"""
        remote.seed(Collections.TICKETS, make_ticket(technician_id="tech-1"))
        remote.seed(Collections.TICKETS, make_ticket(technician_id="tech-2"))
        remote.seed(Collections.TICKETS, make_ticket(technician_id="tech-1"))

        assert await store.fetch_technician_tickets("tech-1") is True

        assert len(store.tickets) == 2
        assert all(t.technician_id == "tech-1" for t in store.tickets)

    @pytest.mark.asyncio
    async def test_fetch_technician_tickets_failure(self, store, remote):
        """Test the technician fetch error message"""
        remote.fail(Collections.TICKETS, "select")

        assert await store.fetch_technician_tickets("tech-1") is False
        assert store.error == "Failed to fetch technician tickets"

    @pytest.mark.asyncio
    async def test_assign_ticket(self, store, remote):
        """Test reassigning a ticket to another technician"""
        ticket_id = await store.add_ticket(make_ticket())

        assert await store.assign_ticket(ticket_id, "tech-9") is True

        assert store.get(ticket_id).technician_id == "tech-9"
        assert remote.collections[Collections.TICKETS][ticket_id]["technician_id"] == "tech-9"

    @pytest.mark.asyncio
    async def test_delete_ticket(self, store, remote):
        """Test deleting a ticket"""
        ticket_id = await store.add_ticket(make_ticket())

        assert await store.delete_ticket(ticket_id) is True
        assert store.tickets == []
        assert remote.docs(Collections.TICKETS) == []

    @pytest.mark.asyncio
    async def test_ticket_number_collision_is_logged(self, store, caplog):
        """Test a repeated ticket number is accepted with a warning"""
        with patch("repair_desk.stores.tickets.generate_ticket_number", return_value="mar1234"):
            first = await store.add_ticket(make_ticket())
            second = await store.add_ticket(make_ticket())

        assert first != second
        assert store.get(first).ticket_number == store.get(second).ticket_number == "mar1234"
        assert "already used" in caplog.text

    @pytest.mark.asyncio
    async def test_filtered_tickets(self, store):
        """Test filtering by status"""
        await store.add_ticket(make_ticket(status="pending"))
        await store.add_ticket(make_ticket(status="completed"))

        store.set_filter_status("completed")
        assert [t.status for t in store.filtered_tickets()] == ["completed"]

        store.set_filter_status("all")
        assert len(store.filtered_tickets()) == 2

        with pytest.raises(ValueError):
            store.set_filter_status("archived")

    def test_seeded_numbers_are_reproducible(self):
        """Test ticket numbers can be generated from a seeded generator"""
        first = generate_ticket_number(rng=random.Random(7))
        second = generate_ticket_number(rng=random.Random(7))
        assert first == second


class TestUncachedTicketUpdates:
    """Unit tests for updates of tickets not loaded in the store"""

    @pytest.fixture
    def store(self, remote):
        return TicketsStore(remote)

    @pytest.fixture
    def ticket_id(self, remote):
        return remote.seed(Collections.TICKETS, make_ticket(
            ticket_number="mar1234", task_prices=[{"name": "Screen", "price": 80}], cost=80,
        ))

    @pytest.mark.asyncio
    async def test_task_prices_recompute_cost(self, store, remote, ticket_id):
        """Test the stored cost follows new task prices"""
        assert await store.update_ticket(ticket_id, {"task_prices": [{"name": "Screen", "price": 50}]}) is True

        assert remote.collections[Collections.TICKETS][ticket_id]["cost"] == 50
        assert store.tickets == []

    @pytest.mark.asyncio
    async def test_cost_patch_is_overridden(self, store, remote, ticket_id):
        """Test a caller-supplied cost cannot contradict the task prices"""
        assert await store.update_ticket(ticket_id, {"cost": 999}) is True

        assert remote.collections[Collections.TICKETS][ticket_id]["cost"] == 80

    @pytest.mark.asyncio
    async def test_unknown_ticket(self, store, remote):
        """Test updating a ticket that does not exist"""
        assert await store.update_ticket("missing", {"status": "completed"}) is False

        assert store.error == "Ticket not found"
        assert (Collections.TICKETS, "update") not in remote.calls

    @pytest.mark.asyncio
    async def test_ticket_deleted_elsewhere(self, store, remote, ticket_id):
        """Test a cached ticket removed remotely is reported as not found"""
        await store.fetch_tickets()
        del remote.collections[Collections.TICKETS][ticket_id]

        assert await store.update_ticket(ticket_id, {"status": "completed"}) is False

        assert store.error == "Ticket not found"
        assert store.get(ticket_id).status == "pending"
