# app/services/settings_service.py
"""
Settings stored as key/value rows, including the auto-billing document
{enabled, day_of_month, last_run_date}.
"""
from datetime import datetime
from typing import Any, Dict, Optional

from sqlmodel import Session, select

from ..core.constants import (
    AUTO_BILLING_DAY_KEY,
    AUTO_BILLING_ENABLED_KEY,
    AUTO_BILLING_KEYS,
    AUTO_BILLING_LAST_RUN_KEY,
    SYSTEM_ACTOR,
)
from ..core.timeutils import as_utc, utcnow
from ..models.setting import Setting
from .exceptions import BillingValidationError


class SettingsService:
    def __init__(self, session: Session):
        self.session = session

    def get_all_settings(self) -> Dict[str, str]:
        settings = self.session.exec(select(Setting)).all()
        return {s.key: s.value for s in settings}

    def get_setting(self, key: str) -> Optional[str]:
        setting = self.session.get(Setting, key)
        return setting.value if setting else None

    def update_settings(self, settings_to_update: Dict[str, str], updated_by: Optional[str] = None):
        now = utcnow()
        for key, value in settings_to_update.items():
            setting = self.session.get(Setting, key)
            if setting:
                setting.value = value
                setting.updated_at = now
                setting.updated_by = updated_by
            else:
                setting = Setting(key=key, value=value, updated_at=now, updated_by=updated_by)
            self.session.add(setting)

        try:
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

    def update_general_settings(
        self, settings_to_update: Dict[str, str], updated_by: Optional[str]
    ) -> None:
        """Free-form settings. Auto-billing keys only change through their own operations."""
        reserved = sorted(set(settings_to_update) & AUTO_BILLING_KEYS)
        if reserved:
            raise BillingValidationError(
                f"Use the auto-billing settings to change: {', '.join(reserved)}"
            )
        self.update_settings(settings_to_update, updated_by=updated_by)

    # --- Auto-billing document ---

    def get_auto_billing_settings(self) -> Dict[str, Any]:
        """Missing or unreadable values fall back to disabled, day 1, never run."""
        enabled = (self.get_setting(AUTO_BILLING_ENABLED_KEY) or "").lower() == "true"

        try:
            day_of_month = int(self.get_setting(AUTO_BILLING_DAY_KEY) or 1)
        except ValueError:
            day_of_month = 1

        last_run_raw = self.get_setting(AUTO_BILLING_LAST_RUN_KEY)
        try:
            last_run_date = as_utc(datetime.fromisoformat(last_run_raw)) if last_run_raw else None
        except ValueError:
            last_run_date = None

        return {"enabled": enabled, "day_of_month": day_of_month, "last_run_date": last_run_date}

    def update_auto_billing_settings(
        self, enabled: bool, day_of_month: Optional[int], updated_by: Optional[str]
    ) -> Dict[str, Any]:
        if not updated_by:
            raise PermissionError("Only admins can modify auto billing settings")
        day_of_month = day_of_month or 1
        if not 1 <= day_of_month <= 31:
            raise BillingValidationError("day_of_month must be between 1 and 31.")

        self.update_settings(
            {
                AUTO_BILLING_ENABLED_KEY: "true" if enabled else "false",
                AUTO_BILLING_DAY_KEY: str(day_of_month),
            },
            updated_by=updated_by,
        )
        return self.get_auto_billing_settings()

    def mark_auto_billing_run(self, at: datetime) -> None:
        self.update_settings(
            {AUTO_BILLING_LAST_RUN_KEY: as_utc(at).isoformat()}, updated_by=SYSTEM_ACTOR
        )
