"""
models.py — Request and Response Models for the Checkout API

This module defines the data structures exchanged over HTTP. Incoming payloads
are Pydantic models so that malformed requests are rejected before any
business logic runs; outgoing payloads are plain dicts built from the ORM rows.

Models:
    - CartItemRequest: A single cart line submitted at checkout.
    - CreateOrderRequest: The complete checkout payload.

Serializers:
    - order_summary(): Compact confirmation returned by POST /api/orders.
    - order_detail(): Full order view used by the listing and detail endpoints.
"""

from datetime import date, datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from .countdown import as_utc, countdown_applies, payment_countdown
from .db_models import Order
from .payment_status import payment_status_info


class CartItemRequest(BaseModel):
    """
    Represents a single cart line.

    Attributes:
        bundleId (str): Identifier of the bundle being ordered.
        quantity (int): Number of bundles. Must be at least 1.
        price (int): Price the client displayed. The catalogue price is authoritative.
    """
    bundleId: str
    quantity: int = Field(..., ge=1)
    price: int = Field(..., ge=0)


class CreateOrderRequest(BaseModel):
    """
    Represents a checkout submitted by a logged-in customer.

    Attributes:
        customerName (str): Name used for the pickup, at least 2 characters.
        customerEmail (str): Contact email.
        customerPhone (str): Contact phone number, at least 10 characters.
        paymentMethod (str): Only 'BANK_TRANSFER' is supported.
        bankId (str, optional): Destination bank account, may be chosen later.
        paymentProof (str, optional): URL of an already uploaded transfer receipt.
        pickupDate (date): Day the customer collects the order at the venue (YYYY-MM-DD).
        notes (str, optional): Free-form notes for the order.
        items (List[CartItemRequest]): Cart lines.
    """
    customerName: str = Field(..., min_length=2)
    customerEmail: str = Field(..., pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    customerPhone: str = Field(..., min_length=10)
    paymentMethod: Literal["BANK_TRANSFER"] = "BANK_TRANSFER"
    bankId: Optional[str] = None
    paymentProof: Optional[str] = None
    pickupDate: date
    notes: Optional[str] = None
    items: List[CartItemRequest]


def _iso(value):
    if value is None:
        return None
    if isinstance(value, datetime):
        value = as_utc(value)
    return value.isoformat()


def order_summary(order: Order) -> dict:
    payment = order.payment
    return {
        "id": order.id,
        "orderNumber": order.order_number,
        "subtotalAmount": order.subtotal_amount,
        "serviceFee": order.service_fee,
        "totalAmount": order.total_amount,
        "paymentMethod": payment.method if payment else None,
        "orderStatus": order.order_status,
        "paymentStatus": payment.status if payment else None,
        "pickupDate": _iso(order.pickup_date),
        "createdAt": _iso(order.created_at),
    }


def order_detail(order: Order, now: Optional[datetime] = None) -> dict:
    """
    Full order view, including line items with their bundle and store, the
    payment record, the payment action flags and, while the payment is still
    owed, the payment countdown.
    """
    payment = order.payment
    detail = order_summary(order)
    detail.update({
        "userId": order.user_id,
        "customerName": order.customer_name,
        "customerEmail": order.customer_email,
        "customerPhone": order.customer_phone,
        "bankId": order.bank_id,
        "notes": order.notes,
        "updatedAt": _iso(order.updated_at),
        "orderItems": [
            {
                "id": item.id,
                "bundleId": item.bundle_id,
                "quantity": item.quantity,
                "unitPrice": item.unit_price,
                "totalPrice": item.total_price,
                "bundle": {
                    "id": item.bundle.id,
                    "name": item.bundle.name,
                    "storeId": item.bundle.store_id,
                    "store": {"id": item.bundle.store.id, "name": item.bundle.store.name},
                },
            }
            for item in order.items
        ],
        "payment": None if payment is None else {
            "id": payment.id,
            "amount": payment.amount,
            "method": payment.method,
            "status": payment.status,
            "proofUrl": payment.proof_url,
            "notes": payment.notes,
        },
        "paymentInfo": payment_status_info(order.order_status, payment),
    })

    countdown = None
    if countdown_applies(order.order_status, payment.status if payment else None,
                         payment.proof_url if payment else None):
        countdown = payment_countdown(order.created_at, now).to_dict()
    detail["paymentCountdown"] = countdown
    return detail
