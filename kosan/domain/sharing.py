# kosan/domain/sharing.py
from __future__ import annotations

import re
from datetime import date
from urllib.parse import quote

from .periods import month_name

WHATSAPP_COMPOSE_URL = "https://wa.me/?text="

_WHITESPACE = re.compile(r"\s+")


def receipt_download_name(full_name: str, payment_date: date) -> str:
    return f"kwitansi-{full_name}-{payment_date.isoformat()}.pdf"


def receipt_object_name(full_name: str, payment_date: date) -> str:
    """Storage key for an uploaded receipt; whitespace runs become underscores."""
    slug = _WHITESPACE.sub("_", full_name.strip())
    return f"kwitansi-{slug}-{payment_date.isoformat()}.pdf"


def receipt_share_message(public_url: str, payment_date: date) -> str:
    return f"Berikut kwitansi pembayaran kos bulan {month_name(payment_date.month)} {payment_date.year}: {public_url}"


def whatsapp_share_link(public_url: str, payment_date: date) -> str:
    return WHATSAPP_COMPOSE_URL + quote(receipt_share_message(public_url, payment_date), safe="")
