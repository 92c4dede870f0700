"""
notifications.py — WhatsApp Message Generation

Builds the text of the WhatsApp messages sent to stores (new order for their
bundles), plus the `wa.me` links that open a chat with the message
pre-filled. Delivery itself happens outside this service; stores receive
these notices through the notification queue.
"""

import re
from datetime import date, datetime
from typing import Iterable, Optional
from urllib.parse import quote

ID_MONTHS = (
    "Januari", "Februari", "Maret", "April", "Mei", "Juni",
    "Juli", "Agustus", "September", "Oktober", "November", "Desember",
)
INDONESIA_COUNTRY_CODE = "62"


def format_rupiah(amount) -> str:
    """75000 -> 'Rp 75.000'"""
    return "Rp " + f"{int(amount):,}".replace(",", ".")


def format_long_date(value: date) -> str:
    """date(2025, 10, 3) -> '03 Oktober 2025'"""
    return f"{value.day:02d} {ID_MONTHS[value.month - 1]} {value.year}"


def format_order_timestamp(value: datetime) -> str:
    """datetime(2025, 10, 3, 14, 5) -> '03 Okt 2025 14:05'"""
    return f"{value.day:02d} {ID_MONTHS[value.month - 1][:3]} {value.year} {value.hour:02d}:{value.minute:02d}"


def build_store_order_message(
        order_number: str,
        created_at: datetime,
        customer_name: Optional[str],
        customer_phone: Optional[str],
        store_name: str,
        items: Iterable,
        pickup_date: Optional[date],
) -> str:
    """
    Builds the new-order notice for one store.

    Args:
        items: (quantity, bundle_name, cost_price) tuples for this store only.

    Returns:
        str: The message, or an empty string if the store has no items.
    """
    items = list(items)
    if not items:
        return ""

    lines = "\n".join(
        f"- {quantity}x {name} (@{format_rupiah(cost_price)})" for quantity, name, cost_price in items
    )
    store_subtotal = sum(quantity * cost_price for quantity, _, cost_price in items)
    pickup = format_long_date(pickup_date) if pickup_date else "Belum ditentukan"

    return (
        f"*PESANAN BARU*\n"
        f"\n"
        f"*Order:* #{order_number}\n"
        f"*Tanggal Order:* {format_order_timestamp(created_at)}\n"
        f"*Customer:* {customer_name or 'Tidak ada nama'}\n"
        f"*Phone:* {customer_phone or 'Tidak ada nomor'}\n"
        f"\n"
        f"*PESANAN UNTUK {store_name.upper()}:*\n"
        f"{lines}\n"
        f"\n"
        f"*Total Pembayaran ke Toko:* {format_rupiah(store_subtotal)}\n"
        f"*Pickup:* {pickup}\n"
        f"\n"
        f"Mohon konfirmasi dan siapkan pesanan sesuai jadwal pickup.\n"
        f"Balas pesan ini untuk konfirmasi atau jika ada pertanyaan.\n"
        f"\n"
        f"Terima kasih!"
    )


def normalize_whatsapp_phone(phone: str) -> str:
    """Strips non-digits and converts to international format (62...)."""
    digits = re.sub(r"[^0-9]", "", phone)
    if digits.startswith("0"):
        return INDONESIA_COUNTRY_CODE + digits[1:]
    if not digits.startswith(INDONESIA_COUNTRY_CODE):
        return INDONESIA_COUNTRY_CODE + digits
    return digits


def build_whatsapp_url(phone: str, message: str) -> str:
    """
    Builds a wa.me link opening a chat with `phone` and `message` pre-filled.

    Raises:
        ValueError: If phone or message is empty.
    """
    if not phone or not message:
        raise ValueError("Phone number and message are required")
    return f"https://wa.me/{normalize_whatsapp_phone(phone)}?text={quote(message, safe='')}"


def validate_indonesian_phone(phone: str) -> bool:
    # 08xxxxxxxxx (10-13 digits) or 628xxxxxxxxx (11-14 digits)
    digits = re.sub(r"[^0-9]", "", phone)
    return (
        (digits.startswith("08") and 10 <= len(digits) <= 13)
        or (digits.startswith("628") and 11 <= len(digits) <= 14)
    )
