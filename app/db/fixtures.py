# app/db/fixtures.py
"""
Demo data for the in-memory backend.
Loaded once at startup when BILLING_BACKEND=memory; skipped if customers exist.
"""
import logging

from sqlmodel import Session, select

from ..core.constants import SYSTEM_ACTOR, VCStatus
from ..models.customer import Customer
from ..services.customer_service import CustomerService
from ..services.package_service import PackageService
from ..services.vc_inventory_service import VCInventoryService

logger = logging.getLogger(__name__)

DEMO_PACKAGES = [
    {"name": "Basic", "price": 299.0, "channels": 120, "features": ["SD channels"]},
    {"name": "Family Bundle", "price": 449.0, "channels": 180, "features": ["SD channels", "Kids"]},
    {"name": "Premium HD", "price": 599.0, "channels": 250, "features": ["HD channels", "Movies"]},
    {"name": "Sports Package", "price": 799.0, "channels": 300, "features": ["HD channels", "Sports"]},
]

# (customer fields, vc number, package name, active)
DEMO_CUSTOMERS = [
    (
        {"name": "John Smith", "phone_number": "+1 (555) 123-4567",
         "address": "123 Main St, Anytown", "email": "john.smith@email.com",
         "collector_name": "John Collector", "bill_due_date": 15},
        "VC001234", "Premium HD", True,
    ),
    (
        {"name": "Sarah Johnson", "phone_number": "+1 (555) 234-5678",
         "address": "456 Oak Ave, Springfield", "email": "sarah.j@email.com",
         "collector_name": "John Collector", "bill_due_date": 10},
        "VC001235", "Basic", True,
    ),
    (
        {"name": "Michael Brown", "phone_number": "+1 (555) 345-6789",
         "address": "789 Pine Rd, Riverside", "email": "mbrown@email.com",
         "collector_name": "Sarah Collector", "bill_due_date": 5, "is_active": False},
        "VC001236", "Sports Package", False,
    ),
    (
        {"name": "Emily Davis", "phone_number": "+1 (555) 456-7890",
         "address": "321 Elm St, Lakewood", "email": "emily.davis@email.com",
         "collector_name": "Sarah Collector", "bill_due_date": 15},
        "VC001237", "Premium HD", True,
    ),
    (
        {"name": "David Wilson", "phone_number": "+1 (555) 567-8901",
         "address": "654 Maple Dr, Hillview", "email": "dwilson@email.com",
         "collector_name": "John Collector", "bill_due_date": 20},
        "VC001238", "Family Bundle", True,
    ),
    (
        {"name": "Lisa Anderson", "phone_number": "+1 (555) 678-9012",
         "address": "987 Cedar Ln, Greenfield", "email": "lisa.anderson@email.com",
         "collector_name": "Sarah Collector", "bill_due_date": 1},
        "VC001239", "Basic", True,
    ),
]

SPARE_VC_NUMBERS = ["VC001240", "VC001241", "VC001242"]


def seed_fixtures(session: Session) -> None:
    if session.exec(select(Customer)).first():
        logger.info("Customers already present, skipping fixtures")
        return

    package_service = PackageService(session)
    customer_service = CustomerService(session)
    vc_service = VCInventoryService(session)

    packages = {p["name"]: package_service.create_package(p) for p in DEMO_PACKAGES}

    for customer_data, vc_number, package_name, active in DEMO_CUSTOMERS:
        customer = customer_service.create_customer(customer_data)
        package = packages[package_name]
        vc = vc_service.create_vc_item(
            vc_number, package_id=package.id, package_name=package.name, created_by=SYSTEM_ACTOR
        )
        vc_service.assign_vcs_to_customer(
            [vc.id], customer.id, customer.name, changed_by=SYSTEM_ACTOR
        )
        if not active:
            vc_service.change_vc_status(
                vc.id, VCStatus.INACTIVE, changed_by=SYSTEM_ACTOR, reason="Service disconnected"
            )

    basic = packages["Basic"]
    vc_service.bulk_create_vcs(SPARE_VC_NUMBERS, basic.id, basic.name, created_by=SYSTEM_ACTOR)

    logger.info(
        f"Seeded {len(DEMO_PACKAGES)} packages, {len(DEMO_CUSTOMERS)} customers "
        f"and {len(DEMO_CUSTOMERS) + len(SPARE_VC_NUMBERS)} VCs"
    )
