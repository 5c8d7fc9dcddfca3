# app/services/vc_inventory_service.py
"""
VC inventory service: which connection belongs to which customer and package.

Status and ownership only change through the operations below so that the
embedded histories stay consistent. Multi-VC operations validate every VC
first and write them in a single commit.
"""

import logging
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlmodel import Session, select

from ..core.constants import SYSTEM_ACTOR, AvailabilityState, VCStatus
from ..core.timeutils import utcnow
from ..models.vc_item import VCItem, VCOwnershipEntry, VCStatusHistoryEntry
from .exceptions import BillingValidationError, VCConflictError

logger = logging.getLogger(__name__)


def _status_entry(
    status: VCStatus, changed_by: str, at: datetime, reason: Optional[str] = None
) -> Dict[str, Any]:
    entry = VCStatusHistoryEntry(status=status, changed_at=at, changed_by=changed_by, reason=reason)
    return entry.model_dump(mode="json")


def _close_open_ownership(history: List[Dict[str, Any]], at: datetime) -> List[Dict[str, Any]]:
    """Returns a new history list where every open entry ends at `at`."""
    closed = []
    for entry in history or []:
        if entry.get("end_date") is None:
            entry = {**entry, "end_date": at.isoformat()}
        closed.append(entry)
    return closed


def _ownership_entry(
    customer_id: uuid.UUID, customer_name: Optional[str], assigned_by: str, at: datetime
) -> Dict[str, Any]:
    entry = VCOwnershipEntry(
        customer_id=customer_id,
        customer_name=customer_name,
        start_date=at,
        assigned_by=assigned_by,
    )
    return entry.model_dump(mode="json")


def _is_assignable_status(status: VCStatus) -> bool:
    if status == VCStatus.AVAILABLE:
        return True
    elif status == VCStatus.ACTIVE:
        return True
    elif status == VCStatus.INACTIVE:
        return True
    elif status == VCStatus.MAINTENANCE:
        return False
    raise ValueError(f"Unknown VC status: {status}")


class VCInventoryService:
    """
    Service layer for the VC inventory (subscription registry).
    """

    def __init__(self, session: Session):
        self.session = session

    # --- Read operations ---

    def get_all_vcs(self) -> List[VCItem]:
        statement = select(VCItem).order_by(VCItem.vc_number)
        return self.session.exec(statement).all()

    def get_vc_item(self, vc_id: int) -> VCItem:
        vc = self.session.get(VCItem, vc_id)
        if not vc:
            raise FileNotFoundError(f"VC item {vc_id} not found.")
        return vc

    def find_by_vc_number(self, vc_number: str) -> Optional[VCItem]:
        statement = select(VCItem).where(VCItem.vc_number == vc_number)
        return self.session.exec(statement).first()

    def get_vcs_by_customer(self, customer_id: uuid.UUID) -> List[VCItem]:
        statement = (
            select(VCItem).where(VCItem.customer_id == customer_id).order_by(VCItem.vc_number)
        )
        return self.session.exec(statement).all()

    def get_active_vcs_for_customer(self, customer_id: uuid.UUID) -> List[VCItem]:
        """
        Active VCs of a customer, the basis for billing.
        An empty list means "nothing to bill", not an error.
        """
        statement = (
            select(VCItem)
            .where(VCItem.customer_id == customer_id, VCItem.status == VCStatus.ACTIVE)
            .order_by(VCItem.vc_number)
        )
        return self.session.exec(statement).all()

    def validate_availability(self, vc_numbers: List[str]) -> Dict[str, Any]:
        """
        Classify each VC number as available, unavailable or not found.
        Read-only; used to fail fast before a bulk assignment.
        """
        available: List[str] = []
        unavailable: List[str] = []
        details: Dict[str, Dict[str, Any]] = {}

        for vc_number in vc_numbers:
            vc = self.find_by_vc_number(vc_number)
            if vc is None:
                unavailable.append(vc_number)
                details[vc_number] = {"state": AvailabilityState.NOT_FOUND.value}
                continue

            free = vc.customer_id is None and vc.status in (VCStatus.AVAILABLE, VCStatus.INACTIVE)
            state = AvailabilityState.AVAILABLE if free else AvailabilityState.UNAVAILABLE
            (available if free else unavailable).append(vc_number)
            details[vc_number] = {
                "state": state.value,
                "vc_id": vc.id,
                "status": VCStatus(vc.status).value,
                "customer_name": vc.customer_name,
            }

        return {"available": available, "unavailable": unavailable, "details": details}

    # --- Provisioning ---

    def create_vc_item(
        self,
        vc_number: str,
        package_id: Optional[int] = None,
        package_name: Optional[str] = None,
        status: VCStatus = VCStatus.AVAILABLE,
        created_by: str = SYSTEM_ACTOR,
        reason: str = "Created",
    ) -> VCItem:
        if status == VCStatus.ACTIVE:
            raise BillingValidationError("A new VC cannot be created as active; assign it instead.")
        if self.find_by_vc_number(vc_number):
            raise VCConflictError(f"VC number {vc_number} already exists")

        now = utcnow()
        vc = VCItem(
            vc_number=vc_number,
            status=status,
            package_id=package_id,
            package_name=package_name,
            status_history=[_status_entry(status, created_by, now, reason)],
            ownership_history=[],
            created_at=now,
            updated_at=now,
        )
        try:
            self.session.add(vc)
            self.session.commit()
            self.session.refresh(vc)
        except Exception:
            self.session.rollback()
            raise
        logger.info(f"VC item created: {vc_number}")
        return vc

    def bulk_create_vcs(
        self,
        vc_numbers: List[str],
        package_id: Optional[int],
        package_name: Optional[str],
        created_by: str = SYSTEM_ACTOR,
    ) -> Dict[str, List[Any]]:
        success: List[str] = []
        failed: List[Dict[str, str]] = []

        for vc_number in vc_numbers:
            try:
                self.create_vc_item(
                    vc_number,
                    package_id=package_id,
                    package_name=package_name,
                    status=VCStatus.INACTIVE,
                    created_by=created_by,
                    reason="Bulk creation",
                )
                success.append(vc_number)
            except Exception as e:
                failed.append({"vc_number": vc_number, "error": str(e)})

        return {"success": success, "failed": failed}

    # --- Ownership transitions ---

    def _load_many(self, vc_ids: List[int]) -> List[VCItem]:
        if not vc_ids:
            raise BillingValidationError("No VC ids provided.")
        items = []
        seen = set()
        for vc_id in vc_ids:
            if vc_id in seen:
                continue
            seen.add(vc_id)
            items.append(self.get_vc_item(vc_id))
        return items

    def assign_vcs_to_customer(
        self,
        vc_ids: List[int],
        customer_id: uuid.UUID,
        customer_name: str,
        package_id: Optional[int] = None,
        package_name: Optional[str] = None,
        changed_by: str = SYSTEM_ACTOR,
    ) -> List[VCItem]:
        """
        Assign VCs to a customer and activate them.

        All-or-nothing: a VC owned by another customer or under maintenance
        rejects the whole request. Moving a VC between customers goes through
        reassign_vc().
        """
        items = self._load_many(vc_ids)

        for vc in items:
            if vc.customer_id is not None and vc.customer_id != customer_id:
                raise VCConflictError(
                    f"VC {vc.vc_number} is assigned to {vc.customer_name}; reassign it explicitly."
                )
            if not _is_assignable_status(VCStatus(vc.status)):
                raise VCConflictError(f"VC {vc.vc_number} is under maintenance.")

        now = utcnow()
        try:
            for vc in items:
                already_owned = vc.customer_id == customer_id and vc.status == VCStatus.ACTIVE
                if not already_owned:
                    history = _close_open_ownership(vc.ownership_history, now)
                    history.append(_ownership_entry(customer_id, customer_name, changed_by, now))
                    vc.ownership_history = history
                    vc.status_history = [
                        *(vc.status_history or []),
                        _status_entry(VCStatus.ACTIVE, changed_by, now, "Assigned to customer"),
                    ]
                    vc.status = VCStatus.ACTIVE
                    vc.customer_id = customer_id
                    vc.customer_name = customer_name
                if package_id is not None:
                    vc.package_id = package_id
                    vc.package_name = package_name
                vc.updated_at = now
                self.session.add(vc)
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

        for vc in items:
            self.session.refresh(vc)
        logger.info(f"Assigned {len(items)} VC(s) to customer {customer_name} ({customer_id})")
        return items

    def unassign_vcs(self, vc_ids: List[int], changed_by: str = SYSTEM_ACTOR) -> List[VCItem]:
        """Release VCs back to the pool. Already-free VCs are left untouched."""
        items = self._load_many(vc_ids)

        now = utcnow()
        try:
            for vc in items:
                if vc.customer_id is None and vc.status == VCStatus.AVAILABLE:
                    continue
                vc.ownership_history = _close_open_ownership(vc.ownership_history, now)
                vc.status_history = [
                    *(vc.status_history or []),
                    _status_entry(VCStatus.AVAILABLE, changed_by, now, "Unassigned from customer"),
                ]
                vc.status = VCStatus.AVAILABLE
                vc.customer_id = None
                vc.customer_name = None
                vc.updated_at = now
                self.session.add(vc)
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

        for vc in items:
            self.session.refresh(vc)
        logger.info(f"Unassigned {len(items)} VC(s)")
        return items

    def reassign_vc(
        self,
        vc_id: int,
        new_customer_id: uuid.UUID,
        new_customer_name: str,
        changed_by: str = SYSTEM_ACTOR,
    ) -> VCItem:
        """Explicit ownership transfer: closes the current owner, opens the new one."""
        vc = self.get_vc_item(vc_id)
        if vc.customer_id == new_customer_id:
            raise BillingValidationError(f"VC {vc.vc_number} already belongs to {new_customer_name}.")
        if not _is_assignable_status(VCStatus(vc.status)):
            raise VCConflictError(f"VC {vc.vc_number} is under maintenance.")

        now = utcnow()
        previous_owner = vc.customer_name
        try:
            history = _close_open_ownership(vc.ownership_history, now)
            history.append(_ownership_entry(new_customer_id, new_customer_name, changed_by, now))
            vc.ownership_history = history
            if vc.status != VCStatus.ACTIVE:
                vc.status_history = [
                    *(vc.status_history or []),
                    _status_entry(VCStatus.ACTIVE, changed_by, now, "Reassigned"),
                ]
                vc.status = VCStatus.ACTIVE
            vc.customer_id = new_customer_id
            vc.customer_name = new_customer_name
            vc.updated_at = now
            self.session.add(vc)
            self.session.commit()
            self.session.refresh(vc)
        except Exception:
            self.session.rollback()
            raise

        logger.info(f"VC reassigned: {vc.vc_number} {previous_owner} -> {new_customer_name}")
        return vc

    def change_vc_status(
        self,
        vc_id: int,
        new_status: VCStatus,
        changed_by: str = SYSTEM_ACTOR,
        reason: Optional[str] = None,
    ) -> VCItem:
        """
        Move a VC between active, inactive and maintenance without changing
        its owner. Releasing a VC to the pool is unassign_vcs().
        """
        vc = self.get_vc_item(vc_id)
        new_status = VCStatus(new_status)

        if new_status == vc.status:
            return vc
        if new_status == VCStatus.ACTIVE:
            if vc.customer_id is None:
                raise BillingValidationError(
                    f"VC {vc.vc_number} has no customer; assign it to activate."
                )
        elif new_status == VCStatus.AVAILABLE:
            if vc.customer_id is not None:
                raise VCConflictError(
                    f"VC {vc.vc_number} is assigned to {vc.customer_name}; unassign it first."
                )
        elif new_status in (VCStatus.INACTIVE, VCStatus.MAINTENANCE):
            pass
        else:
            raise ValueError(f"Unknown VC status: {new_status}")

        now = utcnow()
        try:
            vc.status_history = [
                *(vc.status_history or []),
                _status_entry(new_status, changed_by, now, reason),
            ]
            vc.status = new_status
            vc.updated_at = now
            self.session.add(vc)
            self.session.commit()
            self.session.refresh(vc)
        except Exception:
            self.session.rollback()
            raise

        logger.info(f"VC status changed: {vc.vc_number} -> {new_status.value}")
        return vc
