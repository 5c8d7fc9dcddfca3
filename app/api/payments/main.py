import uuid
from datetime import date, datetime

from fastapi import APIRouter, Depends, HTTPException, status
from sqlmodel import Session

from ...core.users import require_admin, require_staff
from ...db.engine_sync import get_sync_session
from ...models.user import User
from ...services.payment_service import PaymentService, get_payment_method_display_name
from .models import (
    BulkPaymentResponse,
    DailyCollections,
    Payment,
    PaymentCreate,
    PaymentHistory,
    PaymentsSummary,
)

router = APIRouter()


def get_payment_service(session: Session = Depends(get_sync_session)) -> PaymentService:
    return PaymentService(session)


# --- Payment Endpoints ---


@router.post("/payments", response_model=Payment, status_code=status.HTTP_201_CREATED)
def api_collect_payment(
    payment: PaymentCreate,
    service: PaymentService = Depends(get_payment_service),
    current_user: User = Depends(require_staff),
):
    """
    Record a payment and reconcile the customer's bills and balance.
    """
    try:
        return service.collect_payment(payment.model_dump(), collected_by=current_user.display_name)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except FileNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))


@router.post("/payments/bulk", response_model=BulkPaymentResponse)
def api_bulk_collect_payments(
    payments: list[PaymentCreate],
    service: PaymentService = Depends(get_payment_service),
    current_user: User = Depends(require_staff),
):
    return service.bulk_collect_payments(
        [p.model_dump() for p in payments], collected_by=current_user.display_name
    )


@router.get("/payments", response_model=list[Payment])
def api_get_payments(
    service: PaymentService = Depends(get_payment_service),
    current_user: User = Depends(require_staff),
):
    return service.get_all_payments()


@router.get("/payments/summary", response_model=PaymentsSummary)
def api_get_payments_summary(
    start: datetime | None = None,
    end: datetime | None = None,
    service: PaymentService = Depends(get_payment_service),
    current_user: User = Depends(require_admin),
):
    summary = service.get_payments_summary(start, end)
    for method, totals in summary["payments_by_method"].items():
        totals["label"] = get_payment_method_display_name(method)
    return summary


@router.get("/payments/daily", response_model=DailyCollections)
def api_get_daily_collections(
    day: date | None = None,
    service: PaymentService = Depends(get_payment_service),
    current_user: User = Depends(require_staff),
):
    return service.get_daily_collections(day)


@router.delete("/payments/{payment_id}", status_code=status.HTTP_204_NO_CONTENT)
def api_delete_payment(
    payment_id: int,
    service: PaymentService = Depends(get_payment_service),
    current_user: User = Depends(require_admin),
):
    try:
        service.delete_payment(payment_id, deleted_by=current_user.display_name)
        return
    except FileNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.get("/customers/{customer_id}/payments", response_model=PaymentHistory)
def api_get_customer_payment_history(
    customer_id: uuid.UUID,
    service: PaymentService = Depends(get_payment_service),
    current_user: User = Depends(require_staff),
):
    return service.get_customer_payment_history(customer_id)
