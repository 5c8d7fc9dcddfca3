from .bill import MonthlyBill, VCBillBreakdown
from .customer import Customer
from .invoice import PaymentInvoice
from .package import Package
from .setting import Setting
from .user import User
from .vc_item import VCItem, VCOwnershipEntry, VCStatusHistoryEntry
