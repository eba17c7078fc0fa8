# Overview: Domain error taxonomy shared by the receipt, inventory and debt services.

from __future__ import annotations


class DomainError(Exception):
    """Raised for business rule failures; carries optional structured details."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class NotFoundError(DomainError):
    """A referenced row does not exist (HTTP 404). Aborts the enclosing transaction."""


class CustomerNotFoundError(NotFoundError):
    pass


class WorkerNotFoundError(NotFoundError):
    pass


class ProductNotFoundError(NotFoundError):
    pass


class ConversionNotFoundError(NotFoundError):
    pass


class InventoryItemNotFoundError(NotFoundError):
    pass


class ReceiptNotFoundError(NotFoundError):
    pass


class DebtNotFoundError(NotFoundError):
    pass


class CompanyNotFoundError(NotFoundError):
    pass
