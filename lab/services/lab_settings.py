"""
Singleton lab settings and the report template store.

The settings row always has pk=1 and is created with defaults the first
time anything reads it. Writes bump ``revision``; a caller that passes
the revision it last saw gets a 409 instead of silently overwriting a
newer copy.
"""
from __future__ import annotations

import logging
from typing import Any, Optional

from django.db import transaction

from lab.exceptions import ConflictError
from lab.models import (
    LabSettings,
    default_backup,
    default_lab,
    default_notifications,
    default_pricing,
)

logger = logging.getLogger(__name__)

SETTINGS_PK = 1

SECTION_DEFAULTS = {
    'lab': default_lab,
    'pricing': default_pricing,
    'notifications': default_notifications,
    'backup': default_backup,
}

DEPRECATED_LAB_KEYS = ('consultantPathologist', 'consultantQualification')


class StaleRevision(ConflictError):
    default_detail = 'Settings were modified by another user'


def get_settings() -> LabSettings:
    obj, created = LabSettings.objects.get_or_create(pk=SETTINGS_PK)
    if created:
        logger.info("created default lab settings")
    return obj


def serialize_settings(obj: LabSettings) -> dict[str, Any]:
    return {
        'lab': obj.lab,
        'pricing': obj.pricing,
        'notifications': obj.notifications,
        'backup': obj.backup,
        'reportTemplate': obj.report_template,
        'revision': obj.revision,
        'createdAt': obj.created_at,
        'updatedAt': obj.updated_at,
    }


def parse_revision(value: Any) -> Optional[int]:
    """Accept an int, a numeric string or an ETag-style ``"3"``."""
    if value is None or value == '':
        return None
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    text = str(value).strip().strip('"')
    if text.startswith('W/'):
        text = text[2:].strip('"')
    try:
        return int(text)
    except ValueError:
        return None


def _locked_settings() -> LabSettings:
    get_settings()
    return LabSettings.objects.select_for_update().get(pk=SETTINGS_PK)


def _check_revision(obj: LabSettings, expected: Optional[int], message: str) -> None:
    if expected is not None and expected != obj.revision:
        raise StaleRevision(message, revision=obj.revision)


def update_settings(data: dict[str, Any], expected_revision: Optional[int] = None) -> LabSettings:
    """Replace each supplied section, merged over its defaults."""
    with transaction.atomic():
        obj = _locked_settings()
        _check_revision(obj, expected_revision, 'Settings were modified by another user')
        for section, factory in SECTION_DEFAULTS.items():
            if section not in data:
                continue
            value = data.get(section)
            merged = factory()
            if isinstance(value, dict):
                merged.update(value)
            if section == 'lab':
                for key in DEPRECATED_LAB_KEYS:
                    merged.pop(key, None)
            setattr(obj, section, merged)
        obj.revision += 1
        obj.save()
    return obj


def save_report_template(template: Optional[dict], expected_revision: Optional[int] = None) -> LabSettings:
    """Replace the stored report template wholesale."""
    with transaction.atomic():
        obj = _locked_settings()
        _check_revision(obj, expected_revision, 'Report template was modified by another user')
        obj.report_template = template
        obj.revision += 1
        obj.save(update_fields=['report_template', 'revision', 'updated_at'])
    logger.info("report template saved (revision=%s)", obj.revision)
    return obj
