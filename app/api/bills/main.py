import uuid

from fastapi import APIRouter, Depends, HTTPException, status
from sqlmodel import Session

from ...core.users import require_admin, require_staff
from ...db.engine_sync import get_sync_session
from ...models.user import User
from ...services.bills_service import BillsService
from ...services.exceptions import BillingValidationError, BillsAlreadyExistError
from .models import (
    Bill,
    BillGenerateRequest,
    BillGenerateResponse,
    BillingSummary,
    CustomerFinancialSummary,
)

router = APIRouter()


# --- Dependency Injectors ---
def get_bills_service(session: Session = Depends(get_sync_session)) -> BillsService:
    return BillsService(session)


# --- Bill Endpoints ---


@router.get("/bills", response_model=list[Bill])
def api_get_bills(
    month: str | None = None,
    service: BillsService = Depends(get_bills_service),
    current_user: User = Depends(require_staff),
):
    try:
        return service.get_bills_by_month(month) if month else service.get_all_bills()
    except BillingValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/bills/summary", response_model=BillingSummary)
def api_get_billing_summary(
    month: str | None = None,
    service: BillsService = Depends(get_bills_service),
    current_user: User = Depends(require_staff),
):
    try:
        return service.get_billing_summary(month)
    except BillingValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/bills/{bill_id}", response_model=Bill)
def api_get_bill(
    bill_id: int,
    service: BillsService = Depends(get_bills_service),
    current_user: User = Depends(require_staff),
):
    try:
        return service.get_bill(bill_id)
    except FileNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("/bills/generate", response_model=BillGenerateResponse)
def api_generate_bills(
    request: BillGenerateRequest,
    service: BillsService = Depends(get_bills_service),
    current_user: User = Depends(require_admin),
):
    """
    Generate the monthly bills for a period.

    Per-customer failures are reported in `failed` and do not stop the batch.
    A period that already has bills is rejected with 409; delete it first
    to regenerate.
    """
    try:
        return service.generate_monthly_bills(
            month=request.month,
            customer_ids=request.customer_ids,
            generated_by=current_user.display_name,
            due_days=request.due_days,
        )
    except BillsAlreadyExistError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except BillingValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))


@router.delete("/bills/month/{month}")
def api_delete_bills_for_month(
    month: str,
    service: BillsService = Depends(get_bills_service),
    current_user: User = Depends(require_admin),
):
    """Force-delete a period's bills so it can be generated again."""
    try:
        deleted = service.delete_bills_for_month(month, deleted_by=current_user.display_name)
        return {"deleted": deleted, "month": month}
    except BillingValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/customers/{customer_id}/bills", response_model=list[Bill])
def api_get_customer_bills(
    customer_id: uuid.UUID,
    service: BillsService = Depends(get_bills_service),
    current_user: User = Depends(require_staff),
):
    return service.get_bills_by_customer(customer_id)


@router.get(
    "/customers/{customer_id}/financial-summary", response_model=CustomerFinancialSummary
)
def api_get_customer_financial_summary(
    customer_id: uuid.UUID,
    service: BillsService = Depends(get_bills_service),
    current_user: User = Depends(require_staff),
):
    try:
        return service.get_customer_financial_summary(customer_id)
    except FileNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
