"""
Document models for the back-office collections.

Each model mirrors one remote collection. Field names are the column names
used in the hosted database; timestamps are ISO-8601 strings.
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class Role(str, Enum):
    TECHNICIAN = "technician"
    SUPER_ADMIN = "superAdmin"


class TicketStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


class OrderStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    READY_FOR_PICKUP = "ready_for_pickup"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PaymentStatus(str, Enum):
    NOT_PAID = "not_paid"
    PARTIALLY_PAID = "partially_paid"
    PAID = "paid"


class InvoiceStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class Document(BaseModel):
    """Base for every stored record"""

    model_config = ConfigDict(use_enum_values=True, extra="ignore")

    id: str = ""
    created_at: Optional[str] = None

    @field_validator("created_at", "updated_at", "date", "order_date", "delivery_date",
                     mode="before", check_fields=False)
    @classmethod
    def _timestamp_to_iso(cls, value):
        if isinstance(value, datetime):
            return value.isoformat()
        return value

    def to_remote(self) -> dict:
        """Payload sent to the remote collection (id and server timestamps are owned remotely)"""
        return self.model_dump(mode="json", exclude={"id", "created_at", "updated_at"}, exclude_none=True)


class Client(Document):
    name: str
    email: Optional[str] = None
    phone: str = ""
    address: str = ""


class TaskPrice(BaseModel):
    name: str
    price: float = Field(0, ge=0)


class Ticket(Document):
    ticket_number: str = ""
    client_id: str = ""
    device_type: str = ""
    brand: str = ""
    model: str = ""
    tasks: List[str] = Field(default_factory=list)
    task_prices: Optional[List[TaskPrice]] = None
    issue: Optional[str] = None
    status: TicketStatus = TicketStatus.PENDING
    cost: float = 0
    technician_id: str = ""
    passcode: Optional[str] = None
    updated_at: Optional[str] = None

    @model_validator(mode="after")
    def _cost_matches_task_prices(self) -> "Ticket":
        # cost always equals the sum of task prices when they are recorded
        if self.task_prices:
            self.cost = round(sum(tp.price for tp in self.task_prices), 2)
        return self


class Product(Document):
    name: str
    category: str = ""
    price: float = Field(0, ge=0)
    stock: int = 0
    sku: str = ""
    description: str = ""
    image_url: str = ""


class OrderItem(BaseModel):
    product_id: str = ""
    quantity: int = Field(1, ge=1)
    name: Optional[str] = None
    description: Optional[str] = None
    price: Optional[float] = None


class Order(Document):
    items: List[OrderItem] = Field(default_factory=list)
    total: float = 0
    status: OrderStatus = OrderStatus.PENDING
    client_id: str = ""
    payment_method: str = "cash"
    payment_status: PaymentStatus = PaymentStatus.NOT_PAID
    amount_paid: float = 0
    order_date: Optional[str] = None
    delivery_date: Optional[str] = None
    note: Optional[str] = None


class InvoiceItem(BaseModel):
    id: str = ""
    name: str
    quantity: int = Field(1, ge=1)
    price: float = 0


class Invoice(Document):
    invoice_number: str = ""
    date: Optional[str] = None
    client_id: str = ""
    items: List[InvoiceItem] = Field(default_factory=list)
    subtotal: float = 0
    tax: float = 0
    total: float = 0
    status: InvoiceStatus = InvoiceStatus.PENDING


class DeviceModel(BaseModel):
    id: str = ""
    name: str
    brand_id: str


class TicketSettings(BaseModel):
    """Shared taxonomy used to build ticket forms"""

    device_types: List[str] = Field(default_factory=list)
    brands: List[str] = Field(default_factory=list)
    models: List[DeviceModel] = Field(default_factory=list)
    tasks: List[str] = Field(default_factory=list)


class Identity(BaseModel):
    """Signed-in identity as reported by the auth provider"""

    uid: str
    email: Optional[str] = None
    display_name: Optional[str] = None
    phone_number: Optional[str] = None


class UserProfile(BaseModel):
    """Per-identity role record stored in the users collection"""

    model_config = ConfigDict(use_enum_values=True, extra="ignore")

    uid: str
    email: str = ""
    full_name: str = ""
    phone_number: str = ""
    role: Optional[Role] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
