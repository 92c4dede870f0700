"""Tests for WhatsApp message and link generation."""

from datetime import date, datetime
from urllib.parse import unquote

import pytest

from preorder_service.notifications import (
    build_store_order_message,
    build_whatsapp_url,
    format_long_date,
    format_rupiah,
    normalize_whatsapp_phone,
    validate_indonesian_phone,
)


def test_format_rupiah():
    assert format_rupiah(75000) == "Rp 75.000"
    assert format_rupiah(1250000) == "Rp 1.250.000"
    assert format_rupiah(0) == "Rp 0"


def test_format_long_date():
    assert format_long_date(date(2025, 10, 3)) == "03 Oktober 2025"


class TestStoreOrderMessage:
    def _message(self, items, pickup_date=date(2025, 10, 3)):
        return build_store_order_message(
            order_number="ORD-12345678-ABCDEF",
            created_at=datetime(2025, 10, 1, 14, 5),
            customer_name="Budi",
            customer_phone="081298765432",
            store_name="Toko Kue Sari",
            items=items,
            pickup_date=pickup_date,
        )

    def test_lists_items_at_cost_price(self):
        message = self._message([(2, "Paket Kue Lebaran", 60000), (1, "Paket Nastar", 25000)])

        assert "*Order:* #ORD-12345678-ABCDEF" in message
        assert "*Tanggal Order:* 01 Okt 2025 14:05" in message
        assert "*PESANAN UNTUK TOKO KUE SARI:*" in message
        assert "- 2x Paket Kue Lebaran (@Rp 60.000)" in message
        assert "- 1x Paket Nastar (@Rp 25.000)" in message
        assert "*Total Pembayaran ke Toko:* Rp 145.000" in message
        assert "*Pickup:* 03 Oktober 2025" in message

    def test_without_pickup_date(self):
        assert "*Pickup:* Belum ditentukan" in self._message([(1, "Paket Nastar", 25000)], pickup_date=None)

    def test_no_items_gives_empty_message(self):
        assert self._message([]) == ""


class TestWhatsAppUrl:
    @pytest.mark.parametrize("phone, expected", [
        ("081234567890", "6281234567890"),
        ("0812-3456-7890", "6281234567890"),
        ("+62 812 3456 7890", "6281234567890"),
        ("81234567890", "6281234567890"),
    ])
    def test_normalize_phone(self, phone, expected):
        assert normalize_whatsapp_phone(phone) == expected

    def test_message_is_url_encoded(self):
        url = build_whatsapp_url("081234567890", "Halo *Toko*\nPesanan #1 & 2")
        prefix = "https://wa.me/6281234567890?text="
        assert url.startswith(prefix)
        encoded = url[len(prefix):]
        assert " " not in encoded and "\n" not in encoded and "&" not in encoded
        assert unquote(encoded) == "Halo *Toko*\nPesanan #1 & 2"

    @pytest.mark.parametrize("phone, message", [("", "Halo"), ("081234567890", "")])
    def test_requires_phone_and_message(self, phone, message):
        with pytest.raises(ValueError):
            build_whatsapp_url(phone, message)


@pytest.mark.parametrize("phone, valid", [
    ("081234567890", True),
    ("0812345678", True),
    ("6281234567890", True),
    ("0812345", False),
    ("07123456789", False),
    ("62712345678", False),
])
def test_validate_indonesian_phone(phone, valid):
    assert validate_indonesian_phone(phone) is valid
