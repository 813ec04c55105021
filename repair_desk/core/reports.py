"""
Dashboard figures and per-client history
"""

from typing import Any, Dict, Iterable, Optional

from ..models import Client, Order, Product, Ticket, TicketStatus


def dashboard_summary(tickets: Iterable[Ticket], products: Iterable[Product], clients: Iterable[Client],
                      technician_id: Optional[str] = None, low_stock_threshold: int = 5) -> Dict[str, Any]:
    tickets = [t for t in tickets if technician_id is None or t.technician_id == technician_id]
    products = list(products)
    return {
        "pending_tickets": sum(1 for t in tickets if t.status == TicketStatus.PENDING.value),
        "in_progress_tickets": sum(1 for t in tickets if t.status == TicketStatus.IN_PROGRESS.value),
        "completed_tickets": sum(1 for t in tickets if t.status == TicketStatus.COMPLETED.value),
        "total_earnings": round(sum(t.cost for t in tickets), 2),
        "low_stock_products": sum(1 for p in products if p.stock < low_stock_threshold),
        "total_clients": len(list(clients)),
    }


def client_history(client_id: str, tickets: Iterable[Ticket], orders: Iterable[Order]) -> Dict[str, Any]:
    client_tickets = [t for t in tickets if t.client_id == client_id]
    client_orders = [o for o in orders if o.client_id == client_id]
    return {
        "tickets": client_tickets,
        "orders": client_orders,
        "total_spent": round(sum(t.cost for t in client_tickets) + sum(o.total for o in client_orders), 2),
    }
