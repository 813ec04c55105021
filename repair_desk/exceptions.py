"""
Back-office Exceptions

Exception classes raised at the remote boundary. Stores catch these and
turn them into store-scoped error strings.
"""

from typing import Optional


class RemoteServiceError(Exception):
    """Base exception for remote data service failures"""

    def __init__(self, message: str, collection: Optional[str] = None,
                 operation: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.collection = collection
        self.operation = operation


class RemoteTimeoutError(RemoteServiceError):
    """Exception for remote calls exceeding the configured timeout"""
    pass


class InsufficientStockError(RemoteServiceError):
    """Exception for a stock adjustment that would drop below zero"""

    def __init__(self, product_id: str, requested: int, available: Optional[int] = None):
        super().__init__(
            f"Insufficient stock for product {product_id}: requested {requested}",
            collection="products",
            operation="adjust_stock",
        )
        self.product_id = product_id
        self.requested = requested
        self.available = available


class AuthProviderError(Exception):
    """Exception for identity provider failures"""

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.code = code
