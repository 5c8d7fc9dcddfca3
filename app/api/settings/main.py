from fastapi import APIRouter, Depends, HTTPException, status
from sqlmodel import Session

from ...core.users import require_admin
from ...db.engine_sync import get_sync_session
from ...models.user import User
from ...services.billing_job import run_auto_billing_check
from ...services.exceptions import BillingValidationError
from ...services.settings_service import SettingsService
from .models import AutoBillingRunResponse, AutoBillingSettings, AutoBillingSettingsUpdate

router = APIRouter()


def get_settings_service(session: Session = Depends(get_sync_session)) -> SettingsService:
    return SettingsService(session)


@router.get("/settings", response_model=dict[str, str])
def api_get_settings(
    service: SettingsService = Depends(get_settings_service),
    current_user: User = Depends(require_admin),
):
    return service.get_all_settings()


@router.put("/settings", status_code=status.HTTP_204_NO_CONTENT)
def api_update_settings(
    settings: dict[str, str],
    service: SettingsService = Depends(get_settings_service),
    current_user: User = Depends(require_admin),
):
    try:
        service.update_general_settings(settings, updated_by=current_user.display_name)
    except BillingValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))


# --- Auto billing ---


@router.get("/settings/auto-billing", response_model=AutoBillingSettings)
def api_get_auto_billing(
    service: SettingsService = Depends(get_settings_service),
    current_user: User = Depends(require_admin),
):
    return service.get_auto_billing_settings()


@router.put("/settings/auto-billing", response_model=AutoBillingSettings)
def api_update_auto_billing(
    update: AutoBillingSettingsUpdate,
    service: SettingsService = Depends(get_settings_service),
    current_user: User = Depends(require_admin),
):
    try:
        return service.update_auto_billing_settings(
            update.enabled, update.day_of_month, updated_by=current_user.display_name
        )
    except BillingValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))


@router.post("/settings/auto-billing/run", response_model=AutoBillingRunResponse)
def api_run_auto_billing(
    session: Session = Depends(get_sync_session),
    current_user: User = Depends(require_admin),
):
    """
    Evaluate the auto-billing gate now instead of waiting for the daily job.
    Bills are only generated when the gate is open.
    """
    ran = run_auto_billing_check(session)
    return {"ran": ran, "settings": SettingsService(session).get_auto_billing_settings()}
