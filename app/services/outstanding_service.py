# app/services/outstanding_service.py
"""
Outstanding balance reconciler.

Derives every bill's status and each customer's outstanding balance from the
full set of bills and payments. Called after every bill creation, payment
collection and payment deletion. Values are only written when they change,
so running it twice in a row performs no second write.

Balance rules:
- total_unpaid_bills: full total of every bill that is not paid.
- total_payments: every payment except those settling a paid bill (that
  bill is already left out of total_unpaid_bills). Money paid beyond a paid
  bill's total still counts.
- current_outstanding = max(0, total_unpaid_bills - total_payments)
- credit_balance = max(0, total_payments - total_unpaid_bills)
"""

import logging
import uuid
from collections import defaultdict
from typing import Any, Dict, List

from sqlmodel import Session, select

from ..core.constants import BillStatus
from ..core.timeutils import utcnow
from ..models.bill import MonthlyBill
from ..models.customer import Customer
from ..models.invoice import PaymentInvoice

logger = logging.getLogger(__name__)


def derive_bill_status(total_amount: float, total_paid: float) -> BillStatus:
    """Status of a bill given the sum of the payments linked to it."""
    if total_paid >= total_amount:
        return BillStatus.PAID
    if total_paid > 0:
        return BillStatus.PARTIAL
    return BillStatus.GENERATED


class OutstandingService:
    def __init__(self, session: Session):
        self.session = session

    def _bills_for_customer(self, customer_id: uuid.UUID) -> List[MonthlyBill]:
        statement = select(MonthlyBill).where(MonthlyBill.customer_id == customer_id)
        return self.session.exec(statement).all()

    def _payments_for_customer(self, customer_id: uuid.UUID) -> List[PaymentInvoice]:
        statement = select(PaymentInvoice).where(PaymentInvoice.customer_id == customer_id)
        return self.session.exec(statement).all()

    def get_total_paid_for_bill(self, bill_id: int) -> float:
        statement = select(PaymentInvoice).where(PaymentInvoice.bill_id == bill_id)
        return round(sum(p.amount_paid for p in self.session.exec(statement).all()), 2)

    # --- Per bill ---

    def reconcile_bill_status(self, bill_id: int) -> BillStatus:
        """Recompute one bill's status from its linked payments."""
        bill = self.session.get(MonthlyBill, bill_id)
        if not bill:
            raise FileNotFoundError(f"Bill {bill_id} not found.")

        new_status = derive_bill_status(bill.total_amount, self.get_total_paid_for_bill(bill_id))
        if new_status != bill.status:
            bill.status = new_status
            bill.updated_at = utcnow()
            try:
                self.session.add(bill)
                self.session.commit()
            except Exception:
                self.session.rollback()
                raise
            logger.info(f"Bill {bill_id} status updated to {new_status.value}")
        return new_status

    # --- Per customer ---

    def compute_customer_balance(self, customer_id: uuid.UUID) -> Dict[str, float]:
        """Balance figures for a customer. Read-only."""
        bills = self._bills_for_customer(customer_id)
        payments = self._payments_for_customer(customer_id)
        bill_ids = {bill.id for bill in bills}

        linked_paid: Dict[int, float] = defaultdict(float)
        unlinked_total = 0.0
        for payment in payments:
            # Payments pointing at a deleted bill count as general payments
            if payment.bill_id is not None and payment.bill_id in bill_ids:
                linked_paid[payment.bill_id] += payment.amount_paid
            else:
                unlinked_total += payment.amount_paid

        total_unpaid_bills = 0.0
        total_payments = unlinked_total
        for bill in bills:
            paid = linked_paid.get(bill.id, 0.0)
            if derive_bill_status(bill.total_amount, paid) == BillStatus.PAID:
                total_payments += paid - bill.total_amount
            else:
                total_unpaid_bills += bill.total_amount
                total_payments += paid

        total_unpaid_bills = round(total_unpaid_bills, 2)
        total_payments = round(total_payments, 2)
        return {
            "total_unpaid_bills": total_unpaid_bills,
            "total_payments": total_payments,
            "current_outstanding": round(max(0.0, total_unpaid_bills - total_payments), 2),
            "credit_balance": round(max(0.0, total_payments - total_unpaid_bills), 2),
        }

    def reconcile_customer_outstanding(self, customer_id: uuid.UUID) -> Dict[str, Any]:
        """
        Recompute and store a customer's outstanding balance and credit.
        Returns the balance figures plus "updated" telling whether a write happened.
        """
        customer = self.session.get(Customer, customer_id)
        if not customer:
            raise FileNotFoundError(f"Customer {customer_id} not found.")

        balance = self.compute_customer_balance(customer_id)
        changed = (
            customer.current_outstanding != balance["current_outstanding"]
            or customer.credit_balance != balance["credit_balance"]
        )

        if changed:
            customer.current_outstanding = balance["current_outstanding"]
            customer.credit_balance = balance["credit_balance"]
            try:
                self.session.add(customer)
                self.session.commit()
            except Exception:
                self.session.rollback()
                raise
            logger.info(
                f"Customer {customer_id} outstanding updated: {balance['current_outstanding']}"
                f" (credit {balance['credit_balance']})"
            )

        return {**balance, "updated": changed}

    def reconcile_customer(self, customer_id: uuid.UUID) -> Dict[str, Any]:
        """Every bill status of the customer, then the outstanding balance."""
        for bill in self._bills_for_customer(customer_id):
            self.reconcile_bill_status(bill.id)
        return self.reconcile_customer_outstanding(customer_id)
