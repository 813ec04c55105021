import logging
from typing import Any, Callable, Dict, List, Optional

from fastapi import Depends, FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from .backoffice import BackOffice
from .core.access import ADMIN_ONLY, STAFF, AccessDecision
from .core.billing import ticket_receipt, order_receipt
from .core.reports import client_history, dashboard_summary
from .models import Client, Invoice, OrderItem, Product, Role, Ticket

logger = logging.getLogger("repair_desk.api")


class LoginIn(BaseModel):
    email: str
    password: str


class OrderIn(BaseModel):
    client_id: str
    total: float = Field(ge=0)
    items: Optional[List[OrderItem]] = None


class TermIn(BaseModel):
    name: str


class RenameIn(BaseModel):
    old: str
    new: str


class ModelIn(BaseModel):
    name: str
    brand_id: str


class AssignIn(BaseModel):
    technician_id: str


class StatusIn(BaseModel):
    status: str


class PaymentIn(BaseModel):
    amount: float = Field(gt=0)


class StockIn(BaseModel):
    quantity: int


class RoleIn(BaseModel):
    role: str


class RegisterIn(BaseModel):
    email: str
    password: str = Field(min_length=6)
    full_name: str
    phone_number: Optional[str] = None


class ResetIn(BaseModel):
    email: str


class ProfileIn(BaseModel):
    full_name: str
    phone_number: Optional[str] = None


class EmailIn(BaseModel):
    new_email: str
    password: str


class PasswordIn(BaseModel):
    current_password: str
    new_password: str = Field(min_length=6)


# Taxonomy lists addressable by path segment
_TERM_KINDS = {
    "device-types": ("add_device_type", "remove_device_type", "update_device_type"),
    "brands": ("add_brand", "remove_brand", "update_brand"),
    "tasks": ("add_task", "remove_task", "update_task"),
}


def get_backoffice(request: Request) -> BackOffice:
    return request.app.state.backoffice


def require_roles(*roles: str) -> Callable[[Request], BackOffice]:
    """Route guard: 503 while the session loads, 401 without identity, 403 on role mismatch"""

    def dependency(request: Request) -> BackOffice:
        backoffice = get_backoffice(request)
        decision = backoffice.session.check(allowed_roles=roles or None)
        if decision == AccessDecision.LOADING:
            raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="session loading")
        if decision == AccessDecision.UNAUTHENTICATED:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="not authenticated")
        if decision == AccessDecision.DENIED:
            logger.info("access_denied", extra={"evt": "guard", "role": backoffice.session.role,
                                                "path": request.url.path, "status_code": 403})
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="access denied")
        return backoffice

    return dependency


admin_only = require_roles(*ADMIN_ONLY)
staff = require_roles(*STAFF)


def _store_failure(store) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=store.error or "operation failed")


def _found(record, noun: str):
    if record is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"{noun} not found")
    return record


def _creation_payload(model: BaseModel) -> Dict[str, Any]:
    return model.model_dump(exclude_unset=True)


def _visible_tickets(bo: BackOffice) -> List[Ticket]:
    """Technicians only see tickets assigned to them, whatever the store holds"""
    tickets = bo.tickets.filtered_tickets()
    if bo.session.role == Role.TECHNICIAN.value:
        tickets = [t for t in tickets if t.technician_id == bo.session.uid]
    return tickets


def _visible_ticket(bo: BackOffice, ticket_id: str) -> Ticket:
    ticket = _found(bo.tickets.get(ticket_id), "ticket")
    if bo.session.role == Role.TECHNICIAN.value and ticket.technician_id != bo.session.uid:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="ticket not found")
    return ticket


def create_app(backoffice: BackOffice) -> FastAPI:
    app = FastAPI(title="Repair Desk")
    app.state.backoffice = backoffice

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/")
    def health() -> Dict[str, str]:
        return {"service": "Repair Desk", "session": backoffice.session.state.value}

    # ===== AUTH =====

    @app.post("/auth/login")
    async def login(body: LoginIn) -> Dict[str, Any]:
        result = await backoffice.auth.login_user(body.email, body.password)
        if not result["success"]:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=result["error"])
        return {"uid": backoffice.session.uid, "role": backoffice.session.role}

    @app.post("/auth/logout")
    async def logout() -> Dict[str, str]:
        if not await backoffice.session.sign_out():
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="logout failed")
        return {"status": "ok"}

    @app.post("/auth/register", status_code=status.HTTP_201_CREATED)
    async def register(body: RegisterIn) -> Dict[str, Any]:
        result = await backoffice.auth.register_user(body.email, body.password, body.full_name,
                                                     body.phone_number)
        if not result["success"]:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=result["error"])
        return {"uid": result["user"].uid, "role": backoffice.session.role}

    @app.post("/auth/reset-password")
    async def reset_password(body: ResetIn) -> Dict[str, str]:
        result = await backoffice.auth.reset_password(body.email)
        if not result["success"]:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=result["error"])
        return {"status": "sent"}

    def _account_result(result: Dict[str, Any]) -> Dict[str, str]:
        if not result["success"]:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=result["error"])
        return {"status": "ok"}

    @app.put("/auth/profile")
    async def update_profile(body: ProfileIn, bo: BackOffice = Depends(staff)) -> Dict[str, str]:
        response = _account_result(await bo.auth.update_user_profile(body.full_name, body.phone_number))
        bo.session.profile = await bo.auth.get_user_profile(bo.session.uid)
        return response

    @app.put("/auth/email")
    async def update_email(body: EmailIn, bo: BackOffice = Depends(staff)) -> Dict[str, str]:
        return _account_result(await bo.auth.update_user_email(body.new_email, body.password))

    @app.put("/auth/password")
    async def update_password(body: PasswordIn, bo: BackOffice = Depends(staff)) -> Dict[str, str]:
        return _account_result(await bo.auth.update_user_password(body.current_password, body.new_password))

    @app.get("/auth/me")
    def me(bo: BackOffice = Depends(require_roles())) -> Dict[str, Any]:
        return {
            "identity": bo.session.identity.model_dump(),
            "role": bo.session.role,
            "profile": bo.session.profile.model_dump() if bo.session.profile else None,
        }

    # ===== DASHBOARD =====

    @app.get("/dashboard")
    def dashboard(bo: BackOffice = Depends(staff)) -> Dict[str, Any]:
        if bo.session.role == Role.TECHNICIAN.value:
            # clients and products are admin data
            return dashboard_summary(bo.tickets.tickets, [], [], technician_id=bo.session.uid,
                                     low_stock_threshold=bo.settings.LOW_STOCK_THRESHOLD)
        return dashboard_summary(bo.tickets.tickets, bo.products.products, bo.clients.clients,
                                 low_stock_threshold=bo.settings.LOW_STOCK_THRESHOLD)

    # ===== CLIENTS =====

    @app.get("/clients")
    def list_clients(q: Optional[str] = None, bo: BackOffice = Depends(admin_only)) -> List[Client]:
        bo.clients.set_search_query(q or "")
        return bo.clients.filtered_clients()

    @app.post("/clients", status_code=status.HTTP_201_CREATED)
    async def create_client(body: Client, bo: BackOffice = Depends(admin_only)) -> Client:
        client_id = await bo.clients.add_client(_creation_payload(body))
        if not client_id:
            raise _store_failure(bo.clients)
        return bo.clients.get(client_id)

    @app.get("/clients/{client_id}/history")
    def get_client_history(client_id: str, bo: BackOffice = Depends(admin_only)) -> Dict[str, Any]:
        _found(bo.clients.get(client_id), "client")
        return client_history(client_id, bo.tickets.tickets, bo.orders.orders)

    @app.patch("/clients/{client_id}")
    async def patch_client(client_id: str, body: Dict[str, Any], bo: BackOffice = Depends(admin_only)) -> Client:
        _found(bo.clients.get(client_id), "client")
        if not await bo.clients.update_client(client_id, body):
            raise _store_failure(bo.clients)
        return bo.clients.get(client_id)

    @app.delete("/clients/{client_id}")
    async def remove_client(client_id: str, bo: BackOffice = Depends(admin_only)) -> Dict[str, str]:
        if not await bo.clients.delete_client(client_id):
            raise _store_failure(bo.clients)
        return {"status": "deleted"}

    # ===== TICKETS =====

    @app.get("/tickets")
    def list_tickets(status_filter: str = "all", bo: BackOffice = Depends(staff)) -> List[Ticket]:
        try:
            bo.tickets.set_filter_status(status_filter)
        except ValueError as e:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
        return _visible_tickets(bo)

    @app.post("/tickets", status_code=status.HTTP_201_CREATED)
    async def create_ticket(body: Ticket, bo: BackOffice = Depends(admin_only)) -> Ticket:
        ticket_id = await bo.tickets.add_ticket(_creation_payload(body))
        if not ticket_id:
            raise _store_failure(bo.tickets)
        return bo.tickets.get(ticket_id)

    @app.get("/tickets/{ticket_id}")
    def get_ticket(ticket_id: str, bo: BackOffice = Depends(staff)) -> Ticket:
        return _visible_ticket(bo, ticket_id)

    @app.patch("/tickets/{ticket_id}")
    async def patch_ticket(ticket_id: str, body: Dict[str, Any], bo: BackOffice = Depends(staff)) -> Ticket:
        _visible_ticket(bo, ticket_id)
        if bo.session.role == Role.TECHNICIAN.value and "technician_id" in body:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="access denied")
        if not await bo.tickets.update_ticket(ticket_id, body):
            raise _store_failure(bo.tickets)
        return bo.tickets.get(ticket_id)

    @app.post("/tickets/{ticket_id}/assign")
    async def assign_ticket(ticket_id: str, body: AssignIn, bo: BackOffice = Depends(admin_only)) -> Ticket:
        _found(bo.tickets.get(ticket_id), "ticket")
        if not await bo.tickets.assign_ticket(ticket_id, body.technician_id):
            raise _store_failure(bo.tickets)
        return bo.tickets.get(ticket_id)

    @app.delete("/tickets/{ticket_id}")
    async def remove_ticket(ticket_id: str, bo: BackOffice = Depends(admin_only)) -> Dict[str, str]:
        if not await bo.tickets.delete_ticket(ticket_id):
            raise _store_failure(bo.tickets)
        return {"status": "deleted"}

    @app.get("/tickets/{ticket_id}/receipt")
    def get_ticket_receipt(ticket_id: str, bo: BackOffice = Depends(staff)) -> Dict[str, Any]:
        ticket = _visible_ticket(bo, ticket_id)
        receipt = ticket_receipt(ticket, tax_rate=bo.settings.TAX_RATE)
        return {
            "ticket_number": ticket.ticket_number,
            "lines": [line.__dict__ for line in receipt.lines],
            "subtotal": receipt.subtotal,
            "tax": receipt.tax,
            "total": receipt.total,
        }

    # ===== TICKET SETTINGS =====

    @app.get("/settings/ticket")
    def get_ticket_settings(bo: BackOffice = Depends(staff)) -> Dict[str, Any]:
        return bo.tickets.settings.model_dump()

    @app.post("/settings/ticket/models", status_code=status.HTTP_201_CREATED)
    async def add_model(body: ModelIn, bo: BackOffice = Depends(admin_only)) -> Dict[str, str]:
        model_id = await bo.tickets.add_model(body.name, body.brand_id)
        if not model_id:
            raise _store_failure(bo.tickets)
        return {"id": model_id}

    @app.put("/settings/ticket/models/{model_id}")
    async def rename_model(model_id: str, body: TermIn, bo: BackOffice = Depends(admin_only)) -> Dict[str, str]:
        if not await bo.tickets.update_model(model_id, body.name):
            raise _store_failure(bo.tickets)
        return {"status": "ok"}

    @app.delete("/settings/ticket/models/{model_id}")
    async def remove_model(model_id: str, bo: BackOffice = Depends(admin_only)) -> Dict[str, str]:
        if not await bo.tickets.remove_model(model_id):
            raise _store_failure(bo.tickets)
        return {"status": "deleted"}

    def _term_methods(kind: str):
        if kind not in _TERM_KINDS:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"unknown settings list {kind}")
        return _TERM_KINDS[kind]

    @app.post("/settings/ticket/{kind}", status_code=status.HTTP_201_CREATED)
    async def add_term(kind: str, body: TermIn, bo: BackOffice = Depends(admin_only)) -> Dict[str, str]:
        add, _, _ = _term_methods(kind)
        if not await getattr(bo.tickets, add)(body.name):
            raise _store_failure(bo.tickets)
        return {"status": "ok"}

    @app.put("/settings/ticket/{kind}")
    async def rename_term(kind: str, body: RenameIn, bo: BackOffice = Depends(admin_only)) -> Dict[str, str]:
        _, _, rename = _term_methods(kind)
        if not await getattr(bo.tickets, rename)(body.old, body.new):
            raise _store_failure(bo.tickets)
        return {"status": "ok"}

    @app.delete("/settings/ticket/{kind}/{name}")
    async def remove_term(kind: str, name: str, bo: BackOffice = Depends(admin_only)) -> Dict[str, str]:
        _, remove, _ = _term_methods(kind)
        if not await getattr(bo.tickets, remove)(name):
            raise _store_failure(bo.tickets)
        return {"status": "deleted"}

    # ===== PRODUCTS =====

    @app.get("/products")
    def list_products(q: Optional[str] = None, category: str = "all",
                      bo: BackOffice = Depends(admin_only)) -> List[Product]:
        bo.products.set_search_query(q or "")
        bo.products.set_selected_category(category)
        return bo.products.filtered_products()

    @app.get("/products/categories")
    def list_categories(bo: BackOffice = Depends(admin_only)) -> List[str]:
        return bo.products.categories

    @app.post("/products", status_code=status.HTTP_201_CREATED)
    async def create_product(body: Product, bo: BackOffice = Depends(admin_only)) -> Product:
        product_id = await bo.products.add_product(_creation_payload(body))
        if not product_id:
            raise _store_failure(bo.products)
        return bo.products.get(product_id)

    @app.patch("/products/{product_id}")
    async def patch_product(product_id: str, body: Dict[str, Any], bo: BackOffice = Depends(admin_only)) -> Product:
        _found(bo.products.get(product_id), "product")
        if not await bo.products.update_product(product_id, body):
            raise _store_failure(bo.products)
        return bo.products.get(product_id)

    @app.post("/products/{product_id}/stock")
    async def adjust_stock(product_id: str, body: StockIn, bo: BackOffice = Depends(admin_only)) -> Product:
        _found(bo.products.get(product_id), "product")
        if not await bo.products.update_stock(product_id, body.quantity):
            raise _store_failure(bo.products)
        return bo.products.get(product_id)

    @app.delete("/products/{product_id}")
    async def remove_product(product_id: str, bo: BackOffice = Depends(admin_only)) -> Dict[str, str]:
        if not await bo.products.delete_product(product_id):
            raise _store_failure(bo.products)
        return {"status": "deleted"}

    # ===== ORDERS =====

    @app.get("/orders")
    def list_orders(bo: BackOffice = Depends(admin_only)):
        return bo.orders.orders

    @app.post("/orders", status_code=status.HTTP_201_CREATED)
    async def create_order(body: OrderIn, bo: BackOffice = Depends(admin_only)):
        order_id = await bo.orders.create_order(body.client_id, body.total, body.items)
        if not order_id:
            raise _store_failure(bo.orders)
        return bo.orders.get(order_id)

    @app.patch("/orders/{order_id}")
    async def patch_order(order_id: str, body: Dict[str, Any], bo: BackOffice = Depends(admin_only)):
        _found(bo.orders.get(order_id), "order")
        if not await bo.orders.update_order(order_id, body):
            raise _store_failure(bo.orders)
        return bo.orders.get(order_id)

    @app.post("/orders/{order_id}/status")
    async def set_order_status(order_id: str, body: StatusIn, bo: BackOffice = Depends(admin_only)):
        _found(bo.orders.get(order_id), "order")
        if not await bo.orders.update_order_status(order_id, body.status):
            raise _store_failure(bo.orders)
        return bo.orders.get(order_id)

    @app.post("/orders/{order_id}/payments")
    async def add_payment(order_id: str, body: PaymentIn, bo: BackOffice = Depends(admin_only)):
        _found(bo.orders.get(order_id), "order")
        if not await bo.orders.record_payment(order_id, body.amount):
            raise _store_failure(bo.orders)
        return bo.orders.get(order_id)

    @app.get("/orders/{order_id}/receipt")
    def get_order_receipt(order_id: str, bo: BackOffice = Depends(admin_only)) -> Dict[str, Any]:
        order = _found(bo.orders.get(order_id), "order")
        receipt = order_receipt(order, tax_rate=bo.settings.TAX_RATE)
        return {
            "lines": [line.__dict__ for line in receipt.lines],
            "subtotal": receipt.subtotal,
            "tax": receipt.tax,
            "total": receipt.total,
            "amount_paid": receipt.amount_paid,
            "remaining": receipt.remaining,
        }

    @app.delete("/orders/{order_id}")
    async def remove_order(order_id: str, bo: BackOffice = Depends(admin_only)) -> Dict[str, str]:
        if not await bo.orders.delete_order(order_id):
            raise _store_failure(bo.orders)
        return {"status": "deleted"}

    # ===== INVOICES =====

    @app.get("/invoices")
    def list_invoices(bo: BackOffice = Depends(admin_only)) -> List[Invoice]:
        return bo.invoices.invoices

    @app.post("/invoices", status_code=status.HTTP_201_CREATED)
    async def create_invoice(body: Invoice, bo: BackOffice = Depends(admin_only)) -> Invoice:
        invoice_id = await bo.invoices.add_invoice(_creation_payload(body))
        if not invoice_id:
            raise _store_failure(bo.invoices)
        return bo.invoices.get(invoice_id)

    @app.patch("/invoices/{invoice_id}")
    async def patch_invoice(invoice_id: str, body: Dict[str, Any], bo: BackOffice = Depends(admin_only)) -> Invoice:
        _found(bo.invoices.get(invoice_id), "invoice")
        if not await bo.invoices.update_invoice(invoice_id, body):
            raise _store_failure(bo.invoices)
        return bo.invoices.get(invoice_id)

    @app.delete("/invoices/{invoice_id}")
    async def remove_invoice(invoice_id: str, bo: BackOffice = Depends(admin_only)) -> Dict[str, str]:
        if not await bo.invoices.delete_invoice(invoice_id):
            raise _store_failure(bo.invoices)
        return {"status": "deleted"}

    # ===== USERS =====

    @app.get("/users")
    async def list_users(bo: BackOffice = Depends(admin_only)):
        return await bo.auth.list_users()

    @app.get("/users/technicians")
    async def list_technicians(bo: BackOffice = Depends(admin_only)):
        return await bo.auth.get_all_technicians()

    @app.post("/users/{uid}/role")
    async def set_role(uid: str, body: RoleIn, bo: BackOffice = Depends(admin_only)) -> Dict[str, str]:
        result = await bo.auth.update_user_role(uid, body.role)
        if not result["success"]:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=result["error"])
        return {"status": "ok"}

    return app
