# app/services/payment_service.py
"""
Payment collection and payment queries.

The payment row is the source of truth: once it is committed, failures in
the follow-up reconciliation are logged and left for the next run.
"""
import logging
import secrets
import string
import time
import uuid
from collections import defaultdict
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from ..core.config import get_settings
from ..core.constants import PAYMENT_METHOD_DISPLAY_NAMES, PaymentMethod
from ..core.timeutils import as_utc, day_bounds, utcnow
from ..models.bill import MonthlyBill
from ..models.customer import Customer
from ..models.invoice import PaymentInvoice
from .exceptions import BillingValidationError
from .outstanding_service import OutstandingService

logger = logging.getLogger(__name__)

_RECEIPT_ALPHABET = string.ascii_uppercase + string.digits


def generate_receipt_number() -> str:
    """RCP-<epoch millis>-<4 random chars>. A display identifier, not a key."""
    suffix = "".join(secrets.choice(_RECEIPT_ALPHABET) for _ in range(4))
    return f"RCP-{int(time.time() * 1000)}-{suffix}"


def get_payment_method_display_name(method: str) -> str:
    try:
        return PAYMENT_METHOD_DISPLAY_NAMES[PaymentMethod(method)]
    except ValueError:
        return method


class PaymentService:
    """
    Service layer for PaymentInvoice operations.
    """

    def __init__(self, session: Session, max_amount: Optional[float] = None):
        self.session = session
        self.max_amount = (
            max_amount if max_amount is not None else get_settings().max_payment_amount
        )
        self.outstanding_service = OutstandingService(session)

    def validate_payment_amount(self, amount: Any) -> bool:
        if isinstance(amount, bool) or not isinstance(amount, (int, float)):
            return False
        # Amounts are stored with two decimals
        return 0 < round(amount, 2) <= self.max_amount

    # --- Queries ---

    def get_payment(self, payment_id: int) -> PaymentInvoice:
        payment = self.session.get(PaymentInvoice, payment_id)
        if not payment:
            raise FileNotFoundError(f"Payment {payment_id} not found.")
        return payment

    def get_all_payments(self) -> List[PaymentInvoice]:
        statement = select(PaymentInvoice).order_by(PaymentInvoice.paid_at.desc())
        return self.session.exec(statement).all()

    def get_payments_by_customer(self, customer_id: uuid.UUID) -> List[PaymentInvoice]:
        """All payments of a customer, most recent first."""
        statement = (
            select(PaymentInvoice)
            .where(PaymentInvoice.customer_id == customer_id)
            .order_by(PaymentInvoice.paid_at.desc())
        )
        return self.session.exec(statement).all()

    def get_payments_by_bill(self, bill_id: int) -> List[PaymentInvoice]:
        statement = (
            select(PaymentInvoice)
            .where(PaymentInvoice.bill_id == bill_id)
            .order_by(PaymentInvoice.paid_at.desc())
        )
        return self.session.exec(statement).all()

    # --- Collection ---

    def _validate(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Checks every rule before anything is written. Returns normalized fields."""
        customer_id = data.get("customer_id")
        if not customer_id:
            raise BillingValidationError("customer_id is required.")
        if not isinstance(customer_id, uuid.UUID):
            try:
                customer_id = uuid.UUID(str(customer_id))
            except ValueError:
                raise BillingValidationError(f"Invalid customer_id: {customer_id}")

        customer = self.session.get(Customer, customer_id)
        if not customer:
            raise FileNotFoundError(f"Customer {customer_id} not found.")

        amount = data.get("amount_paid")
        if not self.validate_payment_amount(amount):
            raise BillingValidationError(
                f"Payment amount must be greater than 0 and at most {self.max_amount:g}."
            )
        amount = round(float(amount), 2)

        try:
            method = PaymentMethod(data.get("payment_method") or PaymentMethod.CASH)
        except ValueError:
            raise BillingValidationError(f"Unknown payment method: {data.get('payment_method')}")

        bill_id = data.get("bill_id")
        bill_month = None
        if bill_id is not None:
            bill = self.session.get(MonthlyBill, bill_id)
            if not bill:
                raise BillingValidationError(f"Bill {bill_id} not found.")
            if bill.customer_id != customer_id:
                raise BillingValidationError(
                    f"Bill {bill_id} does not belong to customer {customer.name}."
                )
            remaining = round(
                bill.total_amount - self.outstanding_service.get_total_paid_for_bill(bill_id), 2
            )
            if amount > remaining:
                raise BillingValidationError(
                    f"Payment of {amount:g} exceeds the remaining balance of {remaining:g} "
                    f"on bill {bill.month}."
                )
            bill_month = bill.month

        return {
            "customer": customer,
            "amount_paid": amount,
            "payment_method": method,
            "bill_id": bill_id,
            "bill_month": bill_month,
        }

    def collect_payment(
        self, payment_data: Dict[str, Any], collected_by: Optional[str]
    ) -> PaymentInvoice:
        """
        Record a payment, then reconcile bill statuses and the customer balance.

        Args:
            payment_data: customer_id, amount_paid, payment_method, and optionally
                bill_id, paid_at, notes, receipt_number
            collected_by: name of the collecting user

        Raises:
            PermissionError: no collecting user.
            BillingValidationError: invalid amount, method or bill link.
            FileNotFoundError: unknown customer.
        """
        if not collected_by:
            raise PermissionError("User not authenticated. Please log in to collect payments.")

        fields = self._validate(payment_data)
        customer: Customer = fields["customer"]

        logger.info(f"Processing payment: {fields['amount_paid']} for {customer.name}")

        payment = PaymentInvoice(
            customer_id=customer.id,
            customer_name=customer.name,
            bill_id=fields["bill_id"],
            bill_month=fields["bill_month"],
            amount_paid=fields["amount_paid"],
            payment_method=fields["payment_method"],
            paid_at=as_utc(payment_data.get("paid_at")) or utcnow(),
            collected_by=collected_by,
            receipt_number=payment_data.get("receipt_number") or generate_receipt_number(),
            notes=payment_data.get("notes"),
        )
        try:
            self.session.add(payment)
            self.session.commit()
            self.session.refresh(payment)
        except IntegrityError:
            self.session.rollback()
            raise BillingValidationError(f"Receipt number {payment.receipt_number} already exists.")
        except Exception as e:
            self.session.rollback()
            raise ValueError(f"Database error: {e}")

        self._process_payment_effects(payment)

        logger.info(f"Payment collected: {payment.receipt_number} - {payment.amount_paid}")
        return payment

    def _process_payment_effects(self, payment: PaymentInvoice) -> None:
        customer_id = payment.customer_id
        try:
            if payment.bill_id is not None:
                self.outstanding_service.reconcile_bill_status(payment.bill_id)
            # Every bill, since a payment can settle older ones too
            self.outstanding_service.reconcile_customer(customer_id)
        except Exception as e:
            # Do not undo the payment; reconciliation is retried on the next event
            self.session.rollback()
            logger.error(f"Failed to process payment effects for {customer_id}: {e}", exc_info=True)

    def bulk_collect_payments(
        self, payments: List[Dict[str, Any]], collected_by: Optional[str]
    ) -> Dict[str, List[Any]]:
        success: List[PaymentInvoice] = []
        failed: List[Dict[str, Any]] = []

        for payment_data in payments:
            try:
                success.append(self.collect_payment(payment_data, collected_by))
            except Exception as e:
                failed.append({"payment": payment_data, "error": str(e)})

        return {"success": success, "failed": failed}

    def delete_payment(self, payment_id: int, deleted_by: Optional[str]) -> None:
        """Administrative removal of a payment, followed by reconciliation."""
        if not deleted_by:
            raise PermissionError("Only administrators can delete payments")

        payment = self.get_payment(payment_id)
        customer_id = payment.customer_id
        receipt = payment.receipt_number
        try:
            self.session.delete(payment)
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise
        logger.warning(f"Payment {receipt} deleted by {deleted_by}")

        try:
            self.outstanding_service.reconcile_customer(customer_id)
        except Exception as e:
            self.session.rollback()
            logger.error(f"Failed to reconcile customer {customer_id}: {e}", exc_info=True)

    # --- Reports ---

    def get_payments_summary(
        self, start: Optional[datetime] = None, end: Optional[datetime] = None
    ) -> Dict[str, Any]:
        statement = select(PaymentInvoice)
        if start:
            statement = statement.where(PaymentInvoice.paid_at >= as_utc(start))
        if end:
            statement = statement.where(PaymentInvoice.paid_at <= as_utc(end))
        payments = self.session.exec(statement).all()

        by_method: Dict[str, Dict[str, float]] = defaultdict(lambda: {"count": 0, "amount": 0.0})
        by_collector: Dict[str, Dict[str, float]] = defaultdict(
            lambda: {"count": 0, "amount": 0.0}
        )
        for p in payments:
            method = PaymentMethod(p.payment_method).value
            by_method[method]["count"] += 1
            by_method[method]["amount"] += p.amount_paid
            by_collector[p.collected_by]["count"] += 1
            by_collector[p.collected_by]["amount"] += p.amount_paid

        return {
            "total_payments": len(payments),
            "total_amount": round(sum(p.amount_paid for p in payments), 2),
            "payments_by_method": dict(by_method),
            "payments_by_employee": dict(by_collector),
        }

    def get_daily_collections(self, day: Optional[date] = None) -> Dict[str, Any]:
        """Payments made on one UTC calendar day, today by default."""
        start, end = day_bounds(day or utcnow().date())
        statement = (
            select(PaymentInvoice)
            .where(PaymentInvoice.paid_at >= start, PaymentInvoice.paid_at <= end)
            .order_by(PaymentInvoice.paid_at.desc())
        )
        collections = self.session.exec(statement).all()
        return {
            "total_collections": len(collections),
            "total_amount": round(sum(p.amount_paid for p in collections), 2),
            "collections": collections,
        }

    def get_customer_payment_history(self, customer_id: uuid.UUID) -> Dict[str, Any]:
        payments = self.get_payments_by_customer(customer_id)
        total_paid = round(sum(p.amount_paid for p in payments), 2)
        return {
            "payments": payments,
            "total_paid": total_paid,
            "last_payment_date": payments[0].paid_at if payments else None,
            "average_payment": round(total_paid / len(payments), 2) if payments else 0.0,
        }
