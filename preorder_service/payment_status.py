"""
payment_status.py — Payment Action Flags

Summarizes what a customer or admin may still do with an order's payment,
based on the payment record and the order status.
"""

from .db_models import OrderStatus, PaymentStatus


def payment_status_info(order_status: str, payment) -> dict:
    """
    Args:
        order_status (str): Current OrderStatus value of the order.
        payment: The order's Payment row, or None if none exists yet.

    Returns:
        dict: status, method, proofUrl and the canPay/canCancel/canRefund and
        isPending/isPaid/isFailed/isRefunded flags.
    """
    if payment is None:
        return {
            "status": PaymentStatus.PENDING.value,
            "method": None,
            "proofUrl": None,
            "canPay": False,
            "canCancel": False,
            "canRefund": False,
            "isPending": True,
            "isPaid": False,
            "isFailed": False,
            "isRefunded": False,
        }

    is_pending = payment.status == PaymentStatus.PENDING.value
    is_paid = payment.status == PaymentStatus.PAID.value
    cancelled = order_status == OrderStatus.CANCELLED.value

    return {
        "status": payment.status,
        "method": payment.method,
        "proofUrl": payment.proof_url,
        "canPay": is_pending and not cancelled,
        "canCancel": is_pending and order_status == OrderStatus.PENDING.value,
        "canRefund": is_paid and not cancelled,
        "isPending": is_pending,
        "isPaid": is_paid,
        "isFailed": payment.status == PaymentStatus.FAILED.value,
        "isRefunded": payment.status == PaymentStatus.REFUNDED.value,
    }
