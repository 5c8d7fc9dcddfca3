import re
import uuid
from datetime import date, datetime, timedelta, timezone

import pytest

from app.core.constants import BillStatus, PaymentMethod
from app.models.invoice import PaymentInvoice
from app.services.bills_service import BillsService
from app.services.exceptions import BillingValidationError
from app.services.payment_service import (
    PaymentService,
    generate_receipt_number,
    get_payment_method_display_name,
)


@pytest.fixture
def billed_customer(session, subscribed_customer):
    """Customer with one 500 bill for 2024-03."""
    customer = subscribed_customer(price=500)
    bill = BillsService(session).generate_monthly_bills(
        month="2024-03", generated_by="admin"
    )["success"][0]
    return customer, bill


def test_receipt_number_format():
    receipt = generate_receipt_number()
    assert re.fullmatch(r"RCP-\d{13,}-[A-Z0-9]{4}", receipt)


def test_payment_method_display_names():
    assert get_payment_method_display_name("bank_transfer") == "Bank Transfer"
    assert get_payment_method_display_name("barter") == "barter"


@pytest.mark.parametrize("amount", [0, 0.004, -10, "100", None, True, 100000.01])
def test_invalid_amounts_are_rejected(session, billed_customer, amount):
    customer, _ = billed_customer
    service = PaymentService(session)

    with pytest.raises(BillingValidationError):
        service.collect_payment(
            {"customer_id": customer.id, "amount_paid": amount}, collected_by="Collector"
        )

    assert service.get_all_payments() == []


def test_linked_full_payment_marks_bill_paid(session, billed_customer):
    customer, bill = billed_customer

    payment = PaymentService(session).collect_payment(
        {"customer_id": customer.id, "amount_paid": 500, "bill_id": bill.id},
        collected_by="Collector",
    )

    assert payment.bill_month == "2024-03"
    assert payment.customer_name == customer.name
    assert payment.payment_method == PaymentMethod.CASH
    session.refresh(bill)
    session.refresh(customer)
    assert bill.status == BillStatus.PAID
    assert customer.current_outstanding == 0


def test_unlinked_payment_reduces_outstanding_only(session, billed_customer):
    customer, bill = billed_customer

    PaymentService(session).collect_payment(
        {"customer_id": customer.id, "amount_paid": 200, "payment_method": "online"},
        collected_by="Collector",
    )

    session.refresh(bill)
    session.refresh(customer)
    assert bill.status == BillStatus.GENERATED
    assert customer.current_outstanding == 300


def test_partial_then_final_payment(session, billed_customer):
    customer, bill = billed_customer
    service = PaymentService(session)

    service.collect_payment(
        {"customer_id": customer.id, "amount_paid": 200, "bill_id": bill.id},
        collected_by="Collector",
    )
    session.refresh(bill)
    assert bill.status == BillStatus.PARTIAL

    service.collect_payment(
        {"customer_id": customer.id, "amount_paid": 300, "bill_id": bill.id},
        collected_by="Collector",
    )
    session.refresh(bill)
    session.refresh(customer)
    assert bill.status == BillStatus.PAID
    assert customer.current_outstanding == 0
    assert customer.credit_balance == 0


def test_linked_payment_cannot_exceed_remaining_balance(session, billed_customer):
    customer, bill = billed_customer
    service = PaymentService(session)
    service.collect_payment(
        {"customer_id": customer.id, "amount_paid": 400, "bill_id": bill.id},
        collected_by="Collector",
    )

    with pytest.raises(BillingValidationError, match="remaining balance"):
        service.collect_payment(
            {"customer_id": customer.id, "amount_paid": 150, "bill_id": bill.id},
            collected_by="Collector",
        )


def test_bill_of_another_customer_is_rejected(session, billed_customer, make_customer):
    _, bill = billed_customer
    other = make_customer()

    with pytest.raises(BillingValidationError):
        PaymentService(session).collect_payment(
            {"customer_id": other.id, "amount_paid": 100, "bill_id": bill.id},
            collected_by="Collector",
        )


def test_unknown_customer_and_method(session, billed_customer):
    customer, _ = billed_customer
    service = PaymentService(session)

    with pytest.raises(FileNotFoundError):
        service.collect_payment(
            {"customer_id": uuid.uuid4(), "amount_paid": 100}, collected_by="Collector"
        )
    with pytest.raises(BillingValidationError):
        service.collect_payment(
            {"customer_id": customer.id, "amount_paid": 100, "payment_method": "barter"},
            collected_by="Collector",
        )


def test_collection_requires_a_collector(session, billed_customer):
    customer, _ = billed_customer
    with pytest.raises(PermissionError):
        PaymentService(session).collect_payment(
            {"customer_id": customer.id, "amount_paid": 100}, collected_by=None
        )


def test_reconciliation_failure_keeps_the_payment(session, billed_customer, monkeypatch):
    customer, _ = billed_customer
    service = PaymentService(session)

    def broken(customer_id):
        raise RuntimeError("store unavailable")

    monkeypatch.setattr(service.outstanding_service, "reconcile_customer", broken)

    payment = service.collect_payment(
        {"customer_id": customer.id, "amount_paid": 100}, collected_by="Collector"
    )

    assert session.get(PaymentInvoice, payment.id) is not None


def test_delete_payment_restores_outstanding(session, billed_customer):
    customer, bill = billed_customer
    service = PaymentService(session)
    payment = service.collect_payment(
        {"customer_id": customer.id, "amount_paid": 500, "bill_id": bill.id},
        collected_by="Collector",
    )

    payment_id = payment.id
    service.delete_payment(payment_id, deleted_by="admin")

    session.refresh(bill)
    session.refresh(customer)
    assert bill.status == BillStatus.GENERATED
    assert customer.current_outstanding == 500
    with pytest.raises(FileNotFoundError):
        service.get_payment(payment_id)


def test_bulk_collection_reports_failures(session, billed_customer):
    customer, _ = billed_customer

    result = PaymentService(session).bulk_collect_payments(
        [
            {"customer_id": customer.id, "amount_paid": 100},
            {"customer_id": customer.id, "amount_paid": -5},
        ],
        collected_by="Collector",
    )

    assert len(result["success"]) == 1
    assert len(result["failed"]) == 1
    assert result["failed"][0]["payment"]["amount_paid"] == -5


def test_summaries(session, billed_customer):
    customer, _ = billed_customer
    service = PaymentService(session)
    service.collect_payment(
        {"customer_id": customer.id, "amount_paid": 100, "payment_method": "cash"},
        collected_by="Anna",
    )
    service.collect_payment(
        {"customer_id": customer.id, "amount_paid": 50, "payment_method": "cheque"},
        collected_by="Ben",
    )
    service.collect_payment(
        {
            "customer_id": customer.id,
            "amount_paid": 25,
            "paid_at": datetime(2023, 1, 5, 10, 0),
        },
        collected_by="Anna",
    )

    summary = service.get_payments_summary()
    assert summary["total_payments"] == 3
    assert summary["total_amount"] == 175
    assert summary["payments_by_method"]["cash"] == {"count": 2, "amount": 125}
    assert summary["payments_by_employee"]["Anna"]["count"] == 2

    ranged = service.get_payments_summary(start=datetime(2024, 1, 1))
    assert ranged["total_payments"] == 2

    daily = service.get_daily_collections(date(2023, 1, 5))
    assert daily["total_collections"] == 1
    assert daily["total_amount"] == 25

    history = service.get_customer_payment_history(customer.id)
    assert history["total_paid"] == 175
    assert history["average_payment"] == round(175 / 3, 2)
    assert history["last_payment_date"] == max(p.paid_at for p in history["payments"])


def test_amount_is_stored_with_two_decimals(session, billed_customer):
    customer, _ = billed_customer

    payment = PaymentService(session).collect_payment(
        {"customer_id": customer.id, "amount_paid": 0.006}, collected_by="Collector"
    )

    assert payment.amount_paid == 0.01


def test_duplicate_receipt_number_is_rejected(session, billed_customer):
    customer, _ = billed_customer
    service = PaymentService(session)
    service.collect_payment(
        {"customer_id": customer.id, "amount_paid": 100, "receipt_number": "RCP-1-AAAA"},
        collected_by="Collector",
    )

    with pytest.raises(BillingValidationError):
        service.collect_payment(
            {"customer_id": customer.id, "amount_paid": 50, "receipt_number": "RCP-1-AAAA"},
            collected_by="Collector",
        )

    assert len(service.get_all_payments()) == 1


def test_summary_range_accepts_offsets(session, billed_customer):
    customer, _ = billed_customer
    service = PaymentService(session)
    service.collect_payment(
        {
            "customer_id": customer.id,
            "amount_paid": 40,
            "paid_at": datetime(2024, 3, 1, 3, 0, tzinfo=timezone.utc),
        },
        collected_by="Anna",
    )

    ist = timezone(timedelta(hours=5, minutes=30))
    # 08:00 at +05:30 is 02:30 UTC, before the payment
    assert service.get_payments_summary(start=datetime(2024, 3, 1, 8, 0, tzinfo=ist))[
        "total_payments"
    ] == 1
    # 09:00 at +05:30 is 03:30 UTC, after it
    assert service.get_payments_summary(start=datetime(2024, 3, 1, 9, 0, tzinfo=ist))[
        "total_payments"
    ] == 0
    assert service.get_payments_summary(
        start=datetime(2020, 1, 1, tzinfo=timezone.utc),
        end=datetime(2024, 3, 2, tzinfo=timezone.utc),
    )["total_payments"] == 1
