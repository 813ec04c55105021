"""
Session and role gate.

Tracks the signed-in identity and its resolved role, and decides which stores
are loaded for it:
- superAdmin: clients, tickets, settings, products, categories, orders, invoices
- technician: settings and the tickets assigned to that technician
- no role record: nothing (every role-gated view is denied)
"""

import asyncio
import logging
from enum import Enum
from typing import Callable, Collection, Optional

from ..exceptions import AuthProviderError
from ..models import Identity, Role, UserProfile
from ..services.auth import AuthService
from ..stores import ClientsStore, InvoicesStore, OrdersStore, ProductsStore, TicketsStore
from .access import AccessDecision, check_access

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    AUTHENTICATED = "authenticated"
    UNAUTHENTICATED = "unauthenticated"


class SessionGate:
    def __init__(self, auth: AuthService, clients: ClientsStore, tickets: TicketsStore,
                 products: ProductsStore, orders: OrdersStore, invoices: InvoicesStore):
        self.auth = auth
        self.clients = clients
        self.tickets = tickets
        self.products = products
        self.orders = orders
        self.invoices = invoices

        self.state = SessionState.UNINITIALIZED
        self.identity: Optional[Identity] = None
        self.role: Optional[str] = None
        self.profile: Optional[UserProfile] = None
        self.loading = True
        self.initialized = False
        self._unsubscribe: Optional[Callable[[], None]] = None

    @property
    def uid(self) -> Optional[str]:
        return self.identity.uid if self.identity else None

    @property
    def is_authenticated(self) -> bool:
        return self.state == SessionState.AUTHENTICATED

    # ===== PROVIDER EVENTS =====

    def attach(self) -> None:
        """Follow sign-in/sign-out notifications of the auth service"""
        if self._unsubscribe is None:
            self._unsubscribe = self.auth.on_auth_state_change(self.handle_auth_change)

    def detach(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    async def initialize(self) -> None:
        """Resolve the session already held by the provider (if any)"""
        try:
            identity = await self.auth.provider.current_identity()
        except AuthProviderError as e:
            logger.warning(f"No current identity: {e}")
            identity = None
        await self.handle_auth_change(identity)

    async def handle_auth_change(self, identity: Optional[Identity]) -> None:
        self.state = SessionState.LOADING
        self.loading = True

        if identity is not None:
            # a different identity may sign in without a sign-out in between
            self._reset_stores()
            self.identity = identity
            self.profile = await self.auth.get_user_profile(identity.uid)
            self.role = self.profile.role if self.profile else None
            self.state = SessionState.AUTHENTICATED
            logger.info(f"Session for {identity.email or identity.uid} with role {self.role}")
            await self._load_for_role()
        else:
            self.logout()

        self.loading = False
        self.initialized = True

    async def _load_for_role(self) -> None:
        if self.role == Role.SUPER_ADMIN.value:
            await asyncio.gather(
                self.clients.fetch_clients(),
                self.tickets.fetch_tickets(),
                self.tickets.fetch_settings(),
                self.products.fetch_products(),
                self.products.fetch_categories(),
                self.orders.fetch_orders(),
                self.invoices.fetch_invoices(),
            )
        elif self.role == Role.TECHNICIAN.value:
            await asyncio.gather(
                self.tickets.fetch_settings(),
                self.tickets.fetch_technician_tickets(self.identity.uid),
            )
        else:
            logger.warning(f"Identity {self.uid} has no role record; nothing loaded")

    def logout(self) -> None:
        """Forget identity, role and profile, and drop cached records"""
        self.identity = None
        self.role = None
        self.profile = None
        self.state = SessionState.UNAUTHENTICATED
        self._reset_stores()

    def _reset_stores(self) -> None:
        for store in (self.clients, self.tickets, self.products, self.orders, self.invoices):
            store.reset()

    async def sign_out(self) -> bool:
        result = await self.auth.logout_user()
        if not result["success"]:
            return False
        if self.state != SessionState.UNAUTHENTICATED:
            # no listener attached
            self.logout()
        return True

    # ===== GUARDS =====

    def check(self, required_role: Optional[str] = None,
              allowed_roles: Optional[Collection[str]] = None) -> AccessDecision:
        return check_access(
            loading=self.loading,
            authenticated=self.is_authenticated,
            role=self.role,
            required_role=required_role,
            allowed_roles=allowed_roles,
        )
