"""
Receipt and invoice totals.

Ticket and order receipts share one rule: the recorded amount is the subtotal,
tax is a fixed rate on top of it and the remaining balance is the total minus
what was paid. Per-line ticket amounts use the task prices when present and
otherwise split the cost evenly across tasks (display only, may not sum
exactly to the cost).
"""

from dataclasses import dataclass, field
from typing import Iterable, List, Tuple

from ..models import InvoiceItem, Order, PaymentStatus, Ticket

TAX_RATE = 0.20


@dataclass
class ReceiptLine:
    name: str
    quantity: int
    amount: float


@dataclass
class Receipt:
    lines: List[ReceiptLine] = field(default_factory=list)
    subtotal: float = 0.0
    tax: float = 0.0
    total: float = 0.0
    amount_paid: float = 0.0

    @property
    def remaining(self) -> float:
        return remaining_balance(self.total, self.amount_paid)


def compute_totals(subtotal: float, tax_rate: float = TAX_RATE) -> Tuple[float, float, float]:
    tax = subtotal * tax_rate
    return subtotal, tax, subtotal + tax


def remaining_balance(total: float, amount_paid: float) -> float:
    # negative when overpaid; not clamped
    return total - amount_paid


def payment_status_for(total: float, amount_paid: float) -> str:
    if amount_paid >= total:
        return PaymentStatus.PAID.value
    if amount_paid > 0:
        return PaymentStatus.PARTIALLY_PAID.value
    return PaymentStatus.NOT_PAID.value


def ticket_lines(ticket: Ticket) -> List[ReceiptLine]:
    if ticket.task_prices:
        return [ReceiptLine(name=tp.name, quantity=1, amount=tp.price) for tp in ticket.task_prices]
    if not ticket.tasks:
        return []
    share = ticket.cost / len(ticket.tasks)
    return [ReceiptLine(name=task, quantity=1, amount=share) for task in ticket.tasks]


def ticket_receipt(ticket: Ticket, tax_rate: float = TAX_RATE, amount_paid: float = 0.0) -> Receipt:
    subtotal, tax, total = compute_totals(ticket.cost, tax_rate)
    return Receipt(lines=ticket_lines(ticket), subtotal=subtotal, tax=tax, total=total, amount_paid=amount_paid)


def order_receipt(order: Order, tax_rate: float = TAX_RATE) -> Receipt:
    """Receipt for an order whose total is the pre-tax amount"""
    lines = [
        ReceiptLine(
            name=item.name or item.product_id,
            quantity=item.quantity,
            amount=(item.price or 0) * item.quantity,
        )
        for item in order.items
    ]
    subtotal, tax, total = compute_totals(order.total, tax_rate)
    return Receipt(lines=lines, subtotal=subtotal, tax=tax, total=total, amount_paid=order.amount_paid)


def invoice_totals(items: Iterable[InvoiceItem], tax_rate: float = TAX_RATE) -> Tuple[float, float, float]:
    subtotal = round(sum(item.price * item.quantity for item in items), 2)
    subtotal, tax, total = compute_totals(subtotal, tax_rate)
    return subtotal, round(tax, 2), round(total, 2)
