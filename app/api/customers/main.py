# app/api/customers/main.py
import uuid

from fastapi import APIRouter, Depends, HTTPException, status
from sqlmodel import Session

from ...core.users import require_admin, require_staff
from ...db.engine_sync import get_sync_session
from ...models.user import User
from ...services.customer_service import CustomerService
from ...services.package_service import PackageService
from .models import Customer, CustomerCreate, CustomerUpdate, Package, PackageCreate

router = APIRouter()


# --- Dependency Injectors ---
def get_customer_service(session: Session = Depends(get_sync_session)) -> CustomerService:
    return CustomerService(session)


def get_package_service(session: Session = Depends(get_sync_session)) -> PackageService:
    return PackageService(session)


# --- Customer Endpoints ---


@router.get("/customers", response_model=list[Customer])
def api_get_customers(
    service: CustomerService = Depends(get_customer_service),
    current_user: User = Depends(require_staff),
):
    return service.get_all_customers()


@router.get("/customers/{customer_id}", response_model=Customer)
def api_get_customer(
    customer_id: uuid.UUID,
    service: CustomerService = Depends(get_customer_service),
    current_user: User = Depends(require_staff),
):
    try:
        return service.get_customer(customer_id)
    except FileNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("/customers", response_model=Customer, status_code=status.HTTP_201_CREATED)
def api_create_customer(
    customer: CustomerCreate,
    service: CustomerService = Depends(get_customer_service),
    current_user: User = Depends(require_admin),
):
    try:
        return service.create_customer(customer.model_dump())
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.put("/customers/{customer_id}", response_model=Customer)
def api_update_customer(
    customer_id: uuid.UUID,
    customer_update: CustomerUpdate,
    service: CustomerService = Depends(get_customer_service),
    current_user: User = Depends(require_admin),
):
    """Identity fields only; balances are maintained by the billing engine."""
    update_data = customer_update.model_dump(exclude_unset=True)
    try:
        return service.update_customer(customer_id, update_data)
    except FileNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


# --- Package Endpoints ---


@router.get("/packages", response_model=list[Package])
def api_get_packages(
    service: PackageService = Depends(get_package_service),
    current_user: User = Depends(require_staff),
):
    return service.get_all_packages()


@router.post("/packages", response_model=Package, status_code=status.HTTP_201_CREATED)
def api_create_package(
    package: PackageCreate,
    service: PackageService = Depends(get_package_service),
    current_user: User = Depends(require_admin),
):
    try:
        return service.create_package(package.model_dump())
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
