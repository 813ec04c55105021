"""
Domain stores: one in-memory mirror per remote collection family.
"""

from .base import BaseStore
from .clients import ClientsStore
from .invoices import InvoicesStore
from .orders import CUSTOM_PRODUCT_ID, OrdersStore
from .products import ProductsStore
from .tickets import TicketsStore
from .ui import UIStore

__all__ = [
    "BaseStore",
    "ClientsStore",
    "InvoicesStore",
    "OrdersStore",
    "ProductsStore",
    "TicketsStore",
    "UIStore",
    "CUSTOM_PRODUCT_ID",
]
