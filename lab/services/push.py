"""
Expo push delivery for patient notifications.

Push is best effort: the in-app notification row is the source of
truth, so transport failures are logged and never raised.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import requests
from django.conf import settings

logger = logging.getLogger(__name__)

EXPO_PUSH_URL = 'https://exp.host/--/api/v2/push/send'


def send_expo_push(token: str, title: str, body: str, data: Optional[Dict[str, Any]] = None) -> bool:
    if not token:
        return False
    payload = {
        'to': token,
        'sound': 'default',
        'title': title,
        'body': body,
        'data': data or {},
    }
    try:
        r = requests.post(
            getattr(settings, 'EXPO_PUSH_URL', EXPO_PUSH_URL),
            json=payload,
            headers={'Accept': 'application/json'},
            timeout=getattr(settings, 'EXPO_PUSH_TIMEOUT', 5),
        )
        r.raise_for_status()
    except requests.RequestException as exc:
        logger.warning("expo push failed: %s", exc)
        return False
    return True
