import uuid

from fastapi import APIRouter, Depends, HTTPException, status
from sqlmodel import Session

from ...core.users import require_admin, require_staff
from ...db.engine_sync import get_sync_session
from ...models.user import User
from ...services.customer_service import CustomerService
from ...services.exceptions import BillingValidationError, VCConflictError
from ...services.package_service import PackageService
from ...services.vc_inventory_service import VCInventoryService
from .models import (
    VCAssignRequest,
    VCAvailabilityRequest,
    VCAvailabilityResponse,
    VCBulkCreateRequest,
    VCBulkCreateResponse,
    VCItem,
    VCReassignRequest,
    VCStatusChangeRequest,
    VCUnassignRequest,
)

router = APIRouter()


def get_vc_service(session: Session = Depends(get_sync_session)) -> VCInventoryService:
    return VCInventoryService(session)


def get_customer_service(session: Session = Depends(get_sync_session)) -> CustomerService:
    return CustomerService(session)


def get_package_service(session: Session = Depends(get_sync_session)) -> PackageService:
    return PackageService(session)


def _raise_http(e: Exception):
    if isinstance(e, FileNotFoundError):
        raise HTTPException(status_code=404, detail=str(e))
    if isinstance(e, VCConflictError):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    if isinstance(e, BillingValidationError):
        raise HTTPException(status_code=400, detail=str(e))
    raise e


# --- VC Inventory Endpoints ---


@router.get("/vcs", response_model=list[VCItem])
def api_get_vcs(
    service: VCInventoryService = Depends(get_vc_service),
    current_user: User = Depends(require_staff),
):
    return service.get_all_vcs()


@router.get("/customers/{customer_id}/vcs", response_model=list[VCItem])
def api_get_customer_vcs(
    customer_id: uuid.UUID,
    service: VCInventoryService = Depends(get_vc_service),
    customers: CustomerService = Depends(get_customer_service),
    current_user: User = Depends(require_staff),
):
    try:
        customer = customers.get_customer(customer_id)
    except FileNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return service.get_vcs_by_customer(customer.id)


@router.post("/vcs/validate", response_model=VCAvailabilityResponse)
def api_validate_vc_availability(
    request: VCAvailabilityRequest,
    service: VCInventoryService = Depends(get_vc_service),
    current_user: User = Depends(require_staff),
):
    return service.validate_availability(request.vc_numbers)


@router.post("/vcs/assign", response_model=list[VCItem])
def api_assign_vcs(
    request: VCAssignRequest,
    service: VCInventoryService = Depends(get_vc_service),
    customers: CustomerService = Depends(get_customer_service),
    packages: PackageService = Depends(get_package_service),
    current_user: User = Depends(require_admin),
):
    """Assign VCs to a customer. Either every VC is assigned or none is."""
    try:
        customer = customers.get_customer(request.customer_id)
        package = packages.get_package(request.package_id) if request.package_id else None
        return service.assign_vcs_to_customer(
            request.vc_ids,
            customer.id,
            customer.name,
            package_id=package.id if package else None,
            package_name=package.name if package else None,
            changed_by=current_user.display_name,
        )
    except (FileNotFoundError, VCConflictError, BillingValidationError) as e:
        _raise_http(e)


@router.post("/vcs/unassign", response_model=list[VCItem])
def api_unassign_vcs(
    request: VCUnassignRequest,
    service: VCInventoryService = Depends(get_vc_service),
    current_user: User = Depends(require_admin),
):
    try:
        return service.unassign_vcs(request.vc_ids, changed_by=current_user.display_name)
    except (FileNotFoundError, VCConflictError, BillingValidationError) as e:
        _raise_http(e)


@router.post("/vcs/{vc_id}/reassign", response_model=VCItem)
def api_reassign_vc(
    vc_id: int,
    request: VCReassignRequest,
    service: VCInventoryService = Depends(get_vc_service),
    customers: CustomerService = Depends(get_customer_service),
    current_user: User = Depends(require_admin),
):
    try:
        customer = customers.get_customer(request.customer_id)
        return service.reassign_vc(
            vc_id, customer.id, customer.name, changed_by=current_user.display_name
        )
    except (FileNotFoundError, VCConflictError, BillingValidationError) as e:
        _raise_http(e)


@router.put("/vcs/{vc_id}/status", response_model=VCItem)
def api_change_vc_status(
    vc_id: int,
    request: VCStatusChangeRequest,
    service: VCInventoryService = Depends(get_vc_service),
    current_user: User = Depends(require_staff),
):
    try:
        return service.change_vc_status(
            vc_id, request.status, changed_by=current_user.display_name, reason=request.reason
        )
    except (FileNotFoundError, VCConflictError, BillingValidationError) as e:
        _raise_http(e)


@router.post("/vcs/bulk", response_model=VCBulkCreateResponse, status_code=status.HTTP_201_CREATED)
def api_bulk_create_vcs(
    request: VCBulkCreateRequest,
    service: VCInventoryService = Depends(get_vc_service),
    packages: PackageService = Depends(get_package_service),
    current_user: User = Depends(require_admin),
):
    try:
        package = packages.get_package(request.package_id)
    except FileNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return service.bulk_create_vcs(
        request.vc_numbers, package.id, package.name, created_by=current_user.display_name
    )
