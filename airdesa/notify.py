"""Outbound WhatsApp notifications.

The core only builds ``Notification`` values; they are delivered after the
request's transaction has committed and a delivery failure is logged, never
raised.
"""

import logging
import os
import re
from dataclasses import dataclass
from typing import Iterable

import httpx

logger = logging.getLogger(__name__)

WHATSAPP_API_URL = os.getenv("WHATSAPP_API_URL", "https://api.fonnte.com/send")
WHATSAPP_TOKEN = os.getenv("WHATSAPP_TOKEN", "")
ADMIN_WHATSAPP = os.getenv("ADMIN_WHATSAPP", "")
TIMEOUT = 10.0


@dataclass(frozen=True)
class Notification:
    phone: str
    message: str


def format_phone(raw) -> str:
    """Digits only, international ``62`` prefix (``0812-..`` becomes ``62812..``)."""
    digits = re.sub(r"\D", "", str(raw or ""))
    if not digits:
        return ""
    if digits.startswith("0"):
        digits = "62" + digits[1:]
    if not digits.startswith("62"):
        digits = "62" + digits
    return digits


def send_whatsapp(phone: str, message: str) -> bool:
    if not WHATSAPP_TOKEN:
        logger.info("WHATSAPP_TOKEN not set, skipping message to %s", phone)
        return False
    response = httpx.post(
        WHATSAPP_API_URL,
        data={"target": phone, "message": message},
        headers={"Authorization": WHATSAPP_TOKEN},
        timeout=TIMEOUT,
    )
    response.raise_for_status()
    return True


def dispatch(notifications: Iterable[Notification]) -> int:
    """Deliver each notification; returns how many the gateway accepted."""
    sent = 0
    for n in notifications:
        if not n.phone:
            continue
        try:
            if send_whatsapp(n.phone, n.message):
                sent += 1
        except httpx.HTTPError:
            logger.exception("WhatsApp delivery to %s failed", n.phone)
    return sent
