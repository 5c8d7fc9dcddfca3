# app/services/bills_service.py
"""
Monthly bill generation and bill queries.

Generation is best-effort per customer: one customer failing never stops
the others, and the result lists successes, failures and a summary.
A period that already has bills is rejected as a whole; regeneration
requires deleting that period's bills first.
"""

import logging
import re
import uuid
from datetime import date, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from ..core.config import get_settings
from ..core.constants import MONTH_FORMAT, BillStatus
from ..core.timeutils import utcnow
from ..models.bill import MonthlyBill, VCBillBreakdown
from ..models.customer import Customer
from ..models.package import Package
from .customer_service import CustomerService
from .exceptions import BillingValidationError, BillsAlreadyExistError
from .outstanding_service import OutstandingService
from .package_service import PackageService
from .vc_inventory_service import VCInventoryService

logger = logging.getLogger(__name__)

MONTH_PATTERN = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")


def validate_month(month: str) -> str:
    if not month or not MONTH_PATTERN.match(month):
        raise BillingValidationError("Invalid month format. Expected YYYY-MM format.")
    return month


def current_month(today: Optional[date] = None) -> str:
    return (today or utcnow().date()).strftime(MONTH_FORMAT)


def next_month(today: Optional[date] = None) -> str:
    today = today or utcnow().date()
    if today.month == 12:
        return f"{today.year + 1}-01"
    return f"{today.year}-{today.month + 1:02d}"


def compute_due_date(month: str, due_days: int) -> date:
    """
    Day `due_days` of the month after the billing period.
    2024-03 with 15 -> 2024-04-15. Offsets past the month end roll over.
    """
    year, month_num = (int(part) for part in validate_month(month).split("-"))
    if month_num == 12:
        first_of_next = date(year + 1, 1, 1)
    else:
        first_of_next = date(year, month_num + 1, 1)
    return first_of_next + timedelta(days=due_days - 1)


class BillsService:
    """
    Service for bill generation and reporting.
    """

    def __init__(self, session: Session, due_days: Optional[int] = None):
        self.session = session
        self.due_days = due_days if due_days is not None else get_settings().bill_due_days
        self.customer_service = CustomerService(session)
        self.package_service = PackageService(session)
        self.vc_service = VCInventoryService(session)
        self.outstanding_service = OutstandingService(session)

    # --- Queries ---

    def get_all_bills(self) -> List[MonthlyBill]:
        statement = select(MonthlyBill).order_by(MonthlyBill.created_at.desc())
        return self.session.exec(statement).all()

    def get_bills_by_customer(self, customer_id: uuid.UUID) -> List[MonthlyBill]:
        statement = (
            select(MonthlyBill)
            .where(MonthlyBill.customer_id == customer_id)
            .order_by(MonthlyBill.month.desc(), MonthlyBill.created_at.desc())
        )
        return self.session.exec(statement).all()

    def get_bills_by_month(self, month: str) -> List[MonthlyBill]:
        statement = (
            select(MonthlyBill)
            .where(MonthlyBill.month == validate_month(month))
            .order_by(MonthlyBill.customer_name)
        )
        return self.session.exec(statement).all()

    def bills_exist_for_month(self, month: str) -> bool:
        statement = select(MonthlyBill.id).where(MonthlyBill.month == month).limit(1)
        return self.session.exec(statement).first() is not None

    def get_bill(self, bill_id: int) -> MonthlyBill:
        bill = self.session.get(MonthlyBill, bill_id)
        if not bill:
            raise FileNotFoundError(f"Bill {bill_id} not found.")
        return bill

    # --- Generation ---

    def generate_monthly_bills(
        self,
        month: Optional[str] = None,
        customer_ids: Optional[List[uuid.UUID]] = None,
        generated_by: Optional[str] = None,
        due_days: Optional[int] = None,
    ) -> Dict[str, Any]:
        """
        Generate one bill per customer for `month` (YYYY-MM, default current).

        Returns:
            {"success": [MonthlyBill], "failed": [{customer_id, customer_name, error}],
             "summary": {total_customers, bills_generated, total_amount}}

        Raises:
            PermissionError: no acting user.
            BillingValidationError: malformed month or due offset.
            BillsAlreadyExistError: the period is already billed.
        """
        if not generated_by:
            raise PermissionError("User not authenticated")

        month = validate_month(month or current_month())
        due_days = self.due_days if due_days is None else due_days
        if due_days < 1:
            raise BillingValidationError("due_days must be at least 1.")

        logger.info(f"Starting bill generation for {month}")

        if self.bills_exist_for_month(month):
            raise BillsAlreadyExistError(month)

        if customer_ids:
            customers = self.customer_service.get_customers_by_ids(customer_ids)
            missing = set(customer_ids) - {c.id for c in customers}
            if missing:
                logger.warning(f"Ignoring unknown customer ids: {sorted(str(m) for m in missing)}")
        else:
            customers = self.customer_service.get_all_customers()

        logger.info(f"Found {len(customers)} customers")

        due_date = compute_due_date(month, due_days)
        packages = self.package_service.get_package_map()

        success: List[MonthlyBill] = []
        failed: List[Dict[str, Any]] = []
        total_amount = 0.0

        for customer in customers:
            customer_id, customer_name = customer.id, customer.name
            try:
                bill = self._generate_bill_for_customer(customer, month, due_date, packages)
                if bill:
                    success.append(bill)
                    total_amount += bill.total_amount
                    logger.info(f"Bill generated for {customer_name}: {bill.total_amount}")
            except Exception as e:
                self.session.rollback()
                logger.error(f"Failed to generate bill for {customer_name}: {e}")
                failed.append(
                    {"customer_id": customer_id, "customer_name": customer_name, "error": str(e)}
                )

        logger.info(f"Bill generation completed: {len(success)} bills created, {len(failed)} failed")

        return {
            "success": success,
            "failed": failed,
            "summary": {
                "total_customers": len(customers),
                "bills_generated": len(success),
                "total_amount": round(total_amount, 2),
            },
        }

    def _generate_bill_for_customer(
        self,
        customer: Customer,
        month: str,
        due_date: date,
        packages: Dict[int, Package],
    ) -> Optional[MonthlyBill]:
        active_vcs = self.vc_service.get_active_vcs_for_customer(customer.id)
        if not active_vcs:
            logger.info(f"No active VCs for {customer.name}, skipping bill")
            return None

        if not packages:
            raise ValueError("No packages available. Please configure packages first.")

        breakdown = []
        for vc in active_vcs:
            package = packages.get(vc.package_id)
            if not package:
                logger.warning(f"Package not found for VC {vc.vc_number}, leaving it off the bill")
                continue
            breakdown.append(
                VCBillBreakdown(
                    vc_number=vc.vc_number,
                    package_id=package.id,
                    package_name=package.name,
                    amount=package.price,
                ).model_dump()
            )

        if not breakdown:
            logger.info(f"No valid packages for {customer.name}, skipping bill")
            return None

        total = round(sum(line["amount"] for line in breakdown), 2)
        now = utcnow()
        bill = MonthlyBill(
            customer_id=customer.id,
            customer_name=customer.name,
            customer_area=customer.collector_name,
            month=month,
            vc_breakdown=breakdown,
            total_amount=total,
            bill_due_date=due_date,
            status=BillStatus.GENERATED,
            created_at=now,
            updated_at=now,
        )

        # Carry the pre-bill balance forward and cache the new monthly charge
        customer.previous_outstanding = customer.current_outstanding
        customer.package_amount = total

        try:
            self.session.add(bill)
            self.session.add(customer)
            self.session.commit()
        except IntegrityError:
            self.session.rollback()
            raise ValueError(f"A bill for {month} already exists for {customer.name}")
        self.session.refresh(bill)

        try:
            self.outstanding_service.reconcile_customer_outstanding(customer.id)
        except Exception as e:
            # The bill stands; the next reconciliation fixes the balance
            logger.error(f"Failed to update outstanding for {customer.name}: {e}", exc_info=True)
            self.session.rollback()

        return bill

    def delete_bills_for_month(self, month: str, deleted_by: Optional[str] = None) -> int:
        """
        Administrative force-delete of a period's bills so it can be regenerated.
        Payments stay; the affected customers are reconciled afterwards.
        """
        if not deleted_by:
            raise PermissionError("User not authenticated")

        bills = self.get_bills_by_month(month)
        customer_ids = {bill.customer_id for bill in bills}
        try:
            for bill in bills:
                self.session.delete(bill)
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

        logger.warning(f"{len(bills)} bill(s) for {month} deleted by {deleted_by}")

        for customer_id in customer_ids:
            try:
                self.outstanding_service.reconcile_customer(customer_id)
            except Exception as e:
                logger.error(f"Failed to reconcile customer {customer_id}: {e}", exc_info=True)
                self.session.rollback()

        return len(bills)

    # --- Reports ---

    def get_billing_summary(self, month: Optional[str] = None) -> Dict[str, Any]:
        bills = self.get_bills_by_month(month) if month else self.get_all_bills()

        paid = [b for b in bills if b.status == BillStatus.PAID]
        pending = [b for b in bills if b.status != BillStatus.PAID]

        return {
            "total_bills": len(bills),
            "total_amount": round(sum(b.total_amount for b in bills), 2),
            "paid_bills": len(paid),
            "paid_amount": round(sum(b.total_amount for b in paid), 2),
            "pending_bills": len(pending),
            "pending_amount": round(sum(b.total_amount for b in pending), 2),
        }

    def get_customer_financial_summary(self, customer_id: uuid.UUID) -> Dict[str, Any]:
        customer = self.customer_service.get_customer(customer_id)
        bills = self.get_bills_by_customer(customer_id)
        active_vcs = self.vc_service.get_active_vcs_for_customer(customer_id)
        balance = self.outstanding_service.compute_customer_balance(customer_id)
        packages = self.package_service.get_package_map()

        monthly_amount = 0.0
        for vc in active_vcs:
            package = packages.get(vc.package_id)
            monthly_amount += package.price if package else 0.0

        latest_bill = bills[0] if bills else None
        return {
            "customer_id": customer.id,
            "previous_os": customer.previous_outstanding,
            "current_os": balance["current_outstanding"],
            "credit_balance": balance["credit_balance"],
            "last_billed_date": latest_bill.created_at if latest_bill else None,
            "next_due_date": latest_bill.bill_due_date if latest_bill else None,
            "total_unpaid_bills": balance["total_unpaid_bills"],
            "total_payments": balance["total_payments"],
            "active_vc_count": len(active_vcs),
            "monthly_amount": round(monthly_amount, 2),
        }
