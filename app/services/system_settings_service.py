"""
System settings service - runtime key/value flags (admin controlled)
"""
import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from app.core.config import settings
from app.models.system_setting import SystemSetting
from app.utils.datetime_utils import now_utc

logger = logging.getLogger(__name__)

AUTO_APPROVE_KEY = "auto_approve_pending_leaves"


def get_setting(db: Session, key: str) -> Optional[SystemSetting]:
    return db.query(SystemSetting).filter(SystemSetting.key == key).first()


def list_settings(db: Session) -> List[SystemSetting]:
    return db.query(SystemSetting).order_by(SystemSetting.key).all()


def set_setting(
    db: Session,
    key: str,
    value: str,
    description: Optional[str] = None,
    updated_by: Optional[str] = None,
) -> SystemSetting:
    """Create or overwrite a setting and commit."""
    setting = get_setting(db, key)
    if setting is None:
        setting = SystemSetting(key=key, value=value, description=description)
        db.add(setting)
    else:
        before = setting.value
        setting.value = value
        if description is not None:
            setting.description = description
        logger.info("System setting changed: key=%s before=%s after=%s by=%s", key, before, value, updated_by)
    setting.updated_by = updated_by
    setting.updated_at = now_utc()
    db.commit()
    db.refresh(setting)
    return setting


def get_auto_approve_enabled(db: Session) -> bool:
    """Persisted flag, or settings.AUTO_APPROVE_DEFAULT while it has never been written."""
    setting = get_setting(db, AUTO_APPROVE_KEY)
    if setting is None:
        return settings.AUTO_APPROVE_DEFAULT
    return setting.value.strip().lower() == "true"


def set_auto_approve_enabled(db: Session, enabled: bool, updated_by: Optional[str] = None) -> SystemSetting:
    return set_setting(
        db,
        AUTO_APPROVE_KEY,
        "true" if enabled else "false",
        description="Automatically approve pending leave requests after their start date has passed",
        updated_by=updated_by,
    )
