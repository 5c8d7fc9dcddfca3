from datetime import date

import pytest

from app.core.constants import BillStatus
from app.models.bill import MonthlyBill
from app.models.invoice import PaymentInvoice
from app.services.outstanding_service import OutstandingService, derive_bill_status


def add_bill(session, customer, month="2024-03", total=500.0, status=BillStatus.GENERATED):
    bill = MonthlyBill(
        customer_id=customer.id,
        customer_name=customer.name,
        month=month,
        vc_breakdown=[],
        total_amount=total,
        bill_due_date=date(2024, 4, 15),
        status=status,
    )
    session.add(bill)
    session.commit()
    session.refresh(bill)
    return bill


def add_payment(session, customer, amount, bill=None, receipt=None):
    payment = PaymentInvoice(
        customer_id=customer.id,
        customer_name=customer.name,
        bill_id=bill.id if bill else None,
        bill_month=bill.month if bill else None,
        amount_paid=amount,
        collected_by="tester",
        receipt_number=receipt or f"RCP-TEST-{amount}-{bill.id if bill else 'x'}",
    )
    session.add(payment)
    session.commit()
    return payment


@pytest.mark.parametrize(
    "total,paid,expected",
    [
        (500, 0, BillStatus.GENERATED),
        (500, 200, BillStatus.PARTIAL),
        (500, 500, BillStatus.PAID),
        (500, 650, BillStatus.PAID),
    ],
)
def test_derive_bill_status(total, paid, expected):
    assert derive_bill_status(total, paid) == expected


def test_no_bills_no_payments_is_zero(session, make_customer):
    customer = make_customer()
    balance = OutstandingService(session).compute_customer_balance(customer.id)
    assert balance == {
        "total_unpaid_bills": 0.0,
        "total_payments": 0.0,
        "current_outstanding": 0.0,
        "credit_balance": 0.0,
    }


def test_partial_bill_counts_payment_once(session, make_customer):
    customer = make_customer()
    bill = add_bill(session, customer, total=500)
    add_payment(session, customer, 200, bill)

    result = OutstandingService(session).reconcile_customer(customer.id)

    session.refresh(bill)
    assert bill.status == BillStatus.PARTIAL
    assert result["current_outstanding"] == 300
    assert result["credit_balance"] == 0


def test_paid_bill_is_not_subtracted_from_other_bills(session, make_customer):
    customer = make_customer()
    march = add_bill(session, customer, month="2024-03", total=500)
    add_bill(session, customer, month="2024-04", total=500)
    add_payment(session, customer, 500, march)

    result = OutstandingService(session).reconcile_customer(customer.id)

    assert result["total_unpaid_bills"] == 500
    assert result["total_payments"] == 0
    assert result["current_outstanding"] == 500


def test_unlinked_overpayment_becomes_credit(session, make_customer):
    customer = make_customer()
    add_bill(session, customer, total=300)
    add_payment(session, customer, 500)

    result = OutstandingService(session).reconcile_customer_outstanding(customer.id)

    assert result["current_outstanding"] == 0
    assert result["credit_balance"] == 200
    session.refresh(customer)
    assert customer.credit_balance == 200


def test_outstanding_is_never_negative(session, make_customer):
    customer = make_customer()
    add_payment(session, customer, 1000)
    result = OutstandingService(session).reconcile_customer_outstanding(customer.id)
    assert result["current_outstanding"] == 0
    assert result["credit_balance"] == 1000


def test_second_reconcile_writes_nothing(session, make_customer):
    customer = make_customer()
    add_bill(session, customer, total=500)
    add_payment(session, customer, 100)
    service = OutstandingService(session)

    first = service.reconcile_customer_outstanding(customer.id)
    second = service.reconcile_customer_outstanding(customer.id)

    assert first["updated"] is True
    assert second["updated"] is False
    assert first["current_outstanding"] == second["current_outstanding"] == 400


def test_reconcile_missing_bill_raises(session):
    with pytest.raises(FileNotFoundError):
        OutstandingService(session).reconcile_bill_status(999)


def test_payment_of_deleted_bill_counts_as_general_payment(session, make_customer):
    customer = make_customer()
    march = add_bill(session, customer, month="2024-03", total=500)
    add_payment(session, customer, 200, march)
    april = add_bill(session, customer, month="2024-04", total=500)
    march_id = march.id
    session.delete(march)
    session.commit()

    balance = OutstandingService(session).compute_customer_balance(customer.id)

    assert april.id != march_id
    assert balance["total_unpaid_bills"] == 500
    assert balance["total_payments"] == 200
    assert balance["current_outstanding"] == 300
