from app.core.constants import SYSTEM_ACTOR, VCStatus
from app.db.fixtures import DEMO_CUSTOMERS, SPARE_VC_NUMBERS, seed_fixtures
from app.services.bills_service import BillsService
from app.services.customer_service import CustomerService
from app.services.vc_inventory_service import VCInventoryService


def test_seed_fixtures_is_idempotent(session):
    seed_fixtures(session)
    seed_fixtures(session)

    assert len(CustomerService(session).get_all_customers()) == len(DEMO_CUSTOMERS)
    vcs = VCInventoryService(session).get_all_vcs()
    assert len(vcs) == len(DEMO_CUSTOMERS) + len(SPARE_VC_NUMBERS)
    spare = [vc for vc in vcs if vc.vc_number in SPARE_VC_NUMBERS]
    assert all(vc.customer_id is None and vc.status == VCStatus.INACTIVE for vc in spare)


def test_fixtures_bill_only_active_connections(session):
    seed_fixtures(session)

    result = BillsService(session).generate_monthly_bills(
        month="2024-03", generated_by=SYSTEM_ACTOR
    )

    billed = {bill.customer_name for bill in result["success"]}
    assert "Michael Brown" not in billed
    assert len(billed) == 5
    assert result["summary"]["total_amount"] == 599 + 299 + 599 + 449 + 299
