"""
Back-office container: builds the remote services, the stores and the session
gate once per process and hands them to the API.
"""

import logging
from typing import Optional

from .config import Settings, get_settings
from .core.bootstrap import ensure_admin_account
from .core.session import SessionGate
from .services.auth import AuthService, SupabaseAuthProvider
from .services.remote import RemoteDataService
from .stores import ClientsStore, InvoicesStore, OrdersStore, ProductsStore, TicketsStore, UIStore

logger = logging.getLogger(__name__)


class BackOffice:
    def __init__(self, remote: RemoteDataService, auth: AuthService, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.remote = remote
        self.auth = auth

        self.clients = ClientsStore(remote)
        self.tickets = TicketsStore(remote)
        self.products = ProductsStore(remote)
        self.orders = OrdersStore(
            remote,
            products=self.products,
            delivery_days=self.settings.DEFAULT_DELIVERY_DAYS,
            tax_rate=self.settings.TAX_RATE,
        )
        self.invoices = InvoicesStore(remote, tax_rate=self.settings.TAX_RATE)
        self.ui = UIStore()

        self.session = SessionGate(auth, self.clients, self.tickets, self.products, self.orders, self.invoices)
        self.session.attach()

    @classmethod
    async def connect(cls, settings: Optional[Settings] = None) -> "BackOffice":
        settings = settings or get_settings()
        remote = await RemoteDataService.connect(settings)
        auth = AuthService(SupabaseAuthProvider(remote.client), remote, settings)
        return cls(remote, auth, settings)

    async def start(self) -> None:
        """Bootstrap the admin account, then resolve any existing provider session"""
        await ensure_admin_account(self.auth, self.settings)
        await self.session.initialize()
        logger.info(f"Back office started (session: {self.session.state.value})")
