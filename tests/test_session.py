import pytest

from repair_desk.config import Collections
from repair_desk.core.access import AccessDecision
from repair_desk.core.session import SessionGate, SessionState
from repair_desk.models import Identity
from repair_desk.stores import ClientsStore, InvoicesStore, OrdersStore, ProductsStore, TicketsStore


@pytest.fixture
def gate(auth, remote):
    products = ProductsStore(remote)
    gate = SessionGate(
        auth,
        ClientsStore(remote),
        TicketsStore(remote),
        products,
        OrdersStore(remote, products=products),
        InvoicesStore(remote),
    )
    gate.attach()
    return gate


@pytest.fixture
def seeded(remote, provider):
    remote.seed(Collections.USERS, {"uid": "admin-1", "email": "owner@example.com", "role": "superAdmin"})
    remote.seed(Collections.USERS, {"uid": "tech-1", "email": "tech@example.com", "role": "technician"})
    remote.seed(Collections.CLIENTS, {"name": "Jane Doe"})
    remote.seed(Collections.TICKETS, {"client_id": "c1", "technician_id": "tech-1", "cost": 50})
    remote.seed(Collections.TICKETS, {"client_id": "c1", "technician_id": "tech-2", "cost": 70})
    remote.seed(Collections.BRANDS, {"name": "Apple"})
    remote.seed(Collections.PRODUCTS, {"name": "Cable", "stock": 3})
    provider.add_account("owner@example.com", "pw", uid="admin-1")
    provider.add_account("tech@example.com", "pw", uid="tech-1")
    provider.add_account("ghost@example.com", "pw", uid="ghost-1")
    return remote


class TestSessionGate:
    """Unit tests for SessionGate"""

    def test_initial_state(self, gate):
        """Test the gate starts loading and denies nothing yet"""
        assert gate.state == SessionState.UNINITIALIZED
        assert gate.check(required_role="superAdmin") == AccessDecision.LOADING

    @pytest.mark.asyncio
    async def test_initialize_without_session(self, gate):
        """Test no provider session leaves the gate unauthenticated"""
        await gate.initialize()

        assert gate.state == SessionState.UNAUTHENTICATED
        assert gate.loading is False
        assert gate.initialized is True
        assert gate.check() == AccessDecision.UNAUTHENTICATED

    @pytest.mark.asyncio
    async def test_super_admin_loads_everything(self, gate, auth, seeded):
        """Test a superAdmin session loads every store"""
        await auth.login_user("owner@example.com", "pw")

        assert gate.state == SessionState.AUTHENTICATED
        assert gate.role == "superAdmin"
        assert len(gate.clients.clients) == 1
        assert len(gate.tickets.tickets) == 2
        assert gate.tickets.settings.brands == ["Apple"]
        assert len(gate.products.products) == 1
        assert gate.check(required_role="superAdmin") == AccessDecision.ALLOW

    @pytest.mark.asyncio
    async def test_technician_loads_own_tickets(self, gate, auth, seeded):
        """Test a technician only loads settings and assigned tickets"""
        await auth.login_user("tech@example.com", "pw")

        assert gate.role == "technician"
        assert [t.technician_id for t in gate.tickets.tickets] == ["tech-1"]
        assert gate.tickets.settings.brands == ["Apple"]
        assert gate.clients.clients == []
        assert gate.products.products == []
        assert (Collections.CLIENTS, "select") not in seeded.calls
        assert gate.check(required_role="superAdmin") == AccessDecision.DENIED
        assert gate.check(allowed_roles=["superAdmin", "technician"]) == AccessDecision.ALLOW

    @pytest.mark.asyncio
    async def test_missing_role_loads_nothing(self, gate, auth, seeded):
        """Test an identity without a role record gets no data"""
        seeded.calls.clear()

        await auth.login_user("ghost@example.com", "pw")

        assert gate.is_authenticated is True
        assert gate.role is None
        assert seeded.calls == [(Collections.USERS, "select")]
        assert gate.check(allowed_roles=["superAdmin", "technician"]) == AccessDecision.DENIED

    @pytest.mark.asyncio
    async def test_logout_clears_state(self, gate, auth, seeded):
        """Test signing out drops identity, role and cached records"""
        await auth.login_user("owner@example.com", "pw")

        assert await gate.sign_out() is True

        assert gate.state == SessionState.UNAUTHENTICATED
        assert gate.identity is None
        assert gate.role is None
        assert gate.clients.clients == []
        assert gate.tickets.tickets == []
        assert gate.tickets.settings.brands == []

    @pytest.mark.asyncio
    async def test_role_lookup_failure(self, gate, seeded):
        """Test an unreadable role record behaves like a missing one"""
        seeded.fail(Collections.USERS, "select")

        await gate.handle_auth_change(Identity(uid="admin-1", email="owner@example.com"))

        assert gate.is_authenticated is True
        assert gate.role is None
        assert gate.clients.clients == []

    @pytest.mark.asyncio
    async def test_detach(self, gate, auth, seeded):
        """Test a detached gate ignores provider events"""
        gate.detach()

        await auth.login_user("owner@example.com", "pw")

        assert gate.state == SessionState.UNINITIALIZED

    @pytest.mark.asyncio
    async def test_switching_identity_drops_previous_data(self, gate, auth, seeded):
        """Test a technician signing in after an admin never sees the admin's records"""
        await auth.login_user("owner@example.com", "pw")
        assert len(gate.tickets.tickets) == 2
        seeded.fail(Collections.TICKETS, "select")

        await auth.login_user("tech@example.com", "pw")

        assert gate.role == "technician"
        assert gate.tickets.tickets == []
        assert gate.tickets.error == "Failed to fetch technician tickets"
        assert gate.clients.clients == []
        assert gate.products.products == []
        assert gate.orders.orders == []

    @pytest.mark.asyncio
    async def test_switching_identity_loads_own_tickets(self, gate, auth, seeded):
        """Test the technician's ticket list after an admin session holds only assigned tickets"""
        await auth.login_user("owner@example.com", "pw")
        await auth.login_user("tech@example.com", "pw")

        assert [t.technician_id for t in gate.tickets.tickets] == ["tech-1"]
        assert gate.clients.clients == []
