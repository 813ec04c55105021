"""
Invoices store
"""

from typing import Any, List, Mapping, Union

from pydantic import ValidationError

from ..config import Collections
from ..core.billing import TAX_RATE, invoice_totals
from ..core.numbering import generate_invoice_number
from ..models import Invoice, InvoiceItem
from .base import BaseStore, as_dict, now_iso


class InvoicesStore(BaseStore[Invoice]):
    collection = Collections.INVOICES
    model = Invoice
    noun = "invoice"
    plural = "invoices"

    def __init__(self, remote, tax_rate: float = TAX_RATE):
        super().__init__(remote)
        self.tax_rate = tax_rate

    @property
    def invoices(self) -> List[Invoice]:
        return self.items

    async def fetch_invoices(self) -> bool:
        return await self._fetch()

    async def add_invoice(self, invoice: Union[Mapping[str, Any], Invoice]) -> str:
        """
        Create an invoice with a generated number.

        When subtotal/tax/total are omitted they are computed from the items.
        Returns the new id, or '' on failure.
        """
        data = as_dict(invoice)
        if "subtotal" not in data and data.get("items"):
            try:
                items = [InvoiceItem.model_validate(i) if not isinstance(i, InvoiceItem) else i for i in data["items"]]
            except ValidationError as e:
                self._fail("Invalid invoice", e)
                return ""
            data["subtotal"], data["tax"], data["total"] = invoice_totals(items, self.tax_rate)
        data.setdefault("date", now_iso())
        created = await self._create(data, invoice_number=generate_invoice_number())
        return created.id if created else ""

    async def update_invoice(self, invoice_id: str, data: Union[Mapping[str, Any], Invoice]) -> bool:
        return await self._update(invoice_id, data)

    async def update_invoice_status(self, invoice_id: str, status: str) -> bool:
        return await self._update(invoice_id, {"status": status}, message="Failed to update invoice status")

    async def delete_invoice(self, invoice_id: str) -> bool:
        return await self._delete(invoice_id)
