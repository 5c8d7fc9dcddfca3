"""
Centralized constants for the billing system.
Removes "magic strings" and provides strong typing for common values.
"""

from enum import Enum, unique


@unique
class VCStatus(str, Enum):
    """Lifecycle states of a VC (viewing card / set-top connection)."""

    AVAILABLE = "available"
    ACTIVE = "active"
    INACTIVE = "inactive"
    MAINTENANCE = "maintenance"


@unique
class BillStatus(str, Enum):
    """Payment state of a monthly bill."""

    GENERATED = "generated"
    PARTIAL = "partial"
    PAID = "paid"


@unique
class PaymentMethod(str, Enum):
    """Accepted payment methods."""

    CASH = "cash"
    ONLINE = "online"
    BANK_TRANSFER = "bank_transfer"
    CHEQUE = "cheque"


@unique
class UserRole(str, Enum):
    """Back-office user roles."""

    ADMIN = "admin"
    EMPLOYEE = "employee"


@unique
class AvailabilityState(str, Enum):
    """Result of checking a VC number before bulk assignment."""

    AVAILABLE = "available"
    UNAVAILABLE = "unavailable"
    NOT_FOUND = "not_found"


PAYMENT_METHOD_DISPLAY_NAMES = {
    PaymentMethod.CASH: "Cash",
    PaymentMethod.ONLINE: "Online",
    PaymentMethod.BANK_TRANSFER: "Bank Transfer",
    PaymentMethod.CHEQUE: "Cheque",
}

# Auto-billing settings keys (stored in the settings table)
AUTO_BILLING_ENABLED_KEY = "auto_billing_enabled"
AUTO_BILLING_DAY_KEY = "auto_billing_day_of_month"
AUTO_BILLING_LAST_RUN_KEY = "auto_billing_last_run"
AUTO_BILLING_KEYS = frozenset(
    {AUTO_BILLING_ENABLED_KEY, AUTO_BILLING_DAY_KEY, AUTO_BILLING_LAST_RUN_KEY}
)

SYSTEM_ACTOR = "system"
MONTH_FORMAT = "%Y-%m"
