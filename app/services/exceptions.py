# app/services/exceptions.py
"""
Domain errors raised by the billing services.

The API layer maps them to HTTP codes:
- BillingValidationError -> 400
- BillsAlreadyExistError, VCConflictError -> 409
- FileNotFoundError (record missing) -> 404
- PermissionError (missing or unauthorized actor) -> 403
"""


class BillingValidationError(ValueError):
    """Bad input rejected before any write."""


class BillsAlreadyExistError(Exception):
    """Bills already exist for the requested billing period."""

    def __init__(self, month: str):
        self.month = month
        super().__init__(f"Bills for {month} already exist")


class VCConflictError(Exception):
    """A VC cannot move to the requested owner or state."""
