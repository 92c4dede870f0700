"""
workflow.py — Checkout and Order Lifecycle Logic

This module contains the order operations behind the HTTP API. Each operation
receives an explicit SQLAlchemy session; none of them create their own
database handle.

Workflow Overview:
1. Checkout: resolve bundles from the catalogue, compute totals, then write
   Order + OrderItems + Payment in a single transaction
2. Store notification: after checkout, announce the order to every store
   involved (runs as a background task)
3. Queries: list the customer's orders, fetch a single order
4. Cancellation: customers may cancel orders that are still pending and unpaid
"""

import logging
import random
import string
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, List, Optional, Tuple

import pika
from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload, sessionmaker

from .clients import StoreNotificationClient
from .db_models import Bundle, Order, OrderItem, OrderStatus, Payment, PaymentStatus
from .models import CreateOrderRequest
from .notifications import build_store_order_message, build_whatsapp_url, validate_indonesian_phone
from .pricing import FeeSchedule, LineItem, OrderTotals, calculate_order_totals, group_by_store

log = logging.getLogger(__name__)

_ORDER_LOAD_OPTIONS = (
    selectinload(Order.items).selectinload(OrderItem.bundle).selectinload(Bundle.store),
    selectinload(Order.payment),
)


class CheckoutError(Exception):
    """Base class for order workflow failures."""


class BundleUnavailable(CheckoutError):
    def __init__(self, bundle_ids):
        super().__init__("Some bundles were not found or are not active")
        self.bundle_ids = list(bundle_ids)


class InvalidFilter(CheckoutError):
    pass


class OrderNotFound(CheckoutError):
    def __init__(self, order_id: str):
        super().__init__(f"Order '{order_id}' not found")
        self.order_id = order_id


class OrderNotCancellable(CheckoutError):
    pass


@dataclass
class CheckoutResult:
    order: Order
    payment: Payment
    totals: OrderTotals


def generate_order_number(now_ms: Optional[int] = None, rng=random) -> str:
    """
    Returns a human-readable order number such as 'ORD-49821377-K3F9QZ':
    the last 8 digits of the epoch milliseconds and 6 random characters.
    """
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    suffix = "".join(rng.choice(string.ascii_uppercase + string.digits) for _ in range(6))
    return f"ORD-{str(now_ms)[-8:]}-{suffix}"


def place_order(
        session: Session,
        user_id: str,
        request: CreateOrderRequest,
        fee_schedule: FeeSchedule,
) -> CheckoutResult:
    """
    Executes a checkout for one customer.

    The catalogue price of each bundle is used; the price sent by the client is
    only informational. The order, its items and its payment are written in one
    transaction, so either all rows exist afterwards or none do.

    Args:
        session (Session): A session with no transaction in progress.
        user_id (str): The authenticated customer.
        request (CreateOrderRequest): Validated checkout payload.
        fee_schedule (FeeSchedule): Service fee policy for the number of stores.

    Returns:
        CheckoutResult: The persisted order and payment plus the computed totals.

    Raises:
        BundleUnavailable: A requested bundle does not exist or is inactive.
        pricing.InvalidInput: The cart is empty or malformed.
        pricing.UnresolvedStore: A bundle has no owning store.
    """
    with session.begin():
        bundle_ids = {item.bundleId for item in request.items}
        bundles = {
            bundle.id: bundle
            for bundle in session.scalars(
                select(Bundle)
                .options(selectinload(Bundle.store))
                .where(Bundle.id.in_(list(bundle_ids)), Bundle.is_active.is_(True))
            )
        }
        missing = sorted(bundle_ids - bundles.keys())
        if missing:
            log.warning(f"Checkout rejected for user {user_id}: unavailable bundles {missing}")
            raise BundleUnavailable(missing)

        line_items = [
            LineItem(bundle_id=item.bundleId, quantity=item.quantity, unit_price=bundles[item.bundleId].price)
            for item in request.items
        ]
        totals = calculate_order_totals(
            line_items,
            lambda bundle_id: bundles[bundle_id].store_id,
            fee_schedule,
        )

        order = Order(
            order_number=generate_order_number(),
            user_id=user_id,
            customer_name=request.customerName,
            customer_email=request.customerEmail,
            customer_phone=request.customerPhone,
            subtotal_amount=totals.subtotal,
            service_fee=totals.service_fee,
            total_amount=totals.total,
            order_status=OrderStatus.PENDING.value,
            bank_id=request.bankId,
            pickup_date=request.pickupDate,
            notes=request.notes,
            items=[
                OrderItem(
                    bundle_id=line.bundle_id,
                    position=position,
                    quantity=line.quantity,
                    unit_price=line.unit_price,
                    total_price=line.line_total,
                )
                for position, line in enumerate(line_items)
            ],
        )
        payment = Payment(
            amount=totals.total,
            method=request.paymentMethod,
            status=PaymentStatus.PENDING.value,
            proof_url=request.paymentProof,
            notes=f"Order notes: {request.notes}" if request.notes else None,
        )
        order.payment = payment
        session.add(order)
        session.flush()

    log.info(
        f"[Order: {order.order_number}] Created for user {user_id}: "
        f"{len(line_items)} item(s) from {totals.store_count} store(s), "
        f"subtotal={totals.subtotal}, service_fee={totals.service_fee}, total={totals.total}"
    )
    return CheckoutResult(order=order, payment=payment, totals=totals)


def list_orders(
        session: Session,
        user_id: str,
        page: int = 1,
        limit: int = 10,
        order_status: Optional[str] = None,
        payment_status: Optional[str] = None,
) -> Tuple[List[Order], int]:
    """
    Returns one page of the customer's orders, newest first, and the total
    number of orders matching the filters.

    Raises:
        InvalidFilter: For an unknown order or payment status.
    """
    if order_status and order_status not in OrderStatus.__members__:
        raise InvalidFilter("Invalid order status filter")
    if payment_status and payment_status not in PaymentStatus.__members__:
        raise InvalidFilter("Invalid payment status filter")

    conditions = [Order.user_id == user_id]
    if order_status:
        conditions.append(Order.order_status == order_status)
    if payment_status:
        conditions.append(Order.payment.has(Payment.status == payment_status))

    orders = session.scalars(
        select(Order)
        .options(*_ORDER_LOAD_OPTIONS)
        .where(*conditions)
        .order_by(Order.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    ).all()
    total = session.scalar(select(func.count()).select_from(Order).where(*conditions))
    return list(orders), total


def get_order(session: Session, user_id: str, order_id: str) -> Order:
    """
    Raises:
        OrderNotFound: If the order does not exist or belongs to someone else.
    """
    order = session.scalar(
        select(Order).options(*_ORDER_LOAD_OPTIONS).where(Order.id == order_id, Order.user_id == user_id)
    )
    if order is None:
        raise OrderNotFound(order_id)
    return order


def cancel_order(session: Session, user_id: str, order_id: str) -> Order:
    """
    Cancels a customer's order. Only orders that are still PENDING and whose
    payment has not been marked PAID can be cancelled.

    Raises:
        OrderNotFound: If the order does not exist or belongs to someone else.
        OrderNotCancellable: If the order is no longer pending or already paid.
    """
    order = get_order(session, user_id, order_id)

    if order.order_status != OrderStatus.PENDING.value:
        raise OrderNotCancellable("Only pending orders can be cancelled")
    if order.payment is not None and order.payment.status == PaymentStatus.PAID.value:
        raise OrderNotCancellable("Paid orders cannot be cancelled")

    order.order_status = OrderStatus.CANCELLED.value
    order.updated_at = datetime.now(timezone.utc)
    session.commit()

    log.info(f"[Order: {order.order_number}] Cancelled by user {user_id}.")
    return order


def notify_stores_workflow(
        order_id: str,
        session_factory: sessionmaker,
        notifier_factory: Callable[[], StoreNotificationClient] = StoreNotificationClient,
) -> int:
    """
    Announces a freshly created order to every store that has items in it.

    This function is called by the API as a background task after the checkout
    transaction committed. Failures are logged and never reach the customer:
    the order exists regardless of whether the stores were notified.

    Args:
        order_id (str): Primary key of the order.
        session_factory (sessionmaker): Factory for a fresh session.
        notifier_factory: Builds the queue client; called once per run.

    Returns:
        int: Number of store notices published.
    """
    published = 0
    notifier = None

    with session_factory() as session:
        order = session.scalar(select(Order).options(*_ORDER_LOAD_OPTIONS).where(Order.id == order_id))
        if order is None:
            log.error(f"Store notification skipped: order '{order_id}' not found.")
            return 0

        log_prefix = f"[Order: {order.order_number}]"
        store_of = {item.bundle_id: item.bundle.store_id for item in order.items}

        try:
            groups = group_by_store(order.items, store_of)
            notifier = notifier_factory()

            for store_id, items in groups.items():
                store = items[0].bundle.store
                message = build_store_order_message(
                    order_number=order.order_number,
                    created_at=order.created_at,
                    customer_name=order.customer_name,
                    customer_phone=order.customer_phone,
                    store_name=store.name,
                    items=[(item.quantity, item.bundle.name, item.bundle.cost_price) for item in items],
                    pickup_date=order.pickup_date,
                )
                whatsapp_url = None
                if not store.whatsapp_number:
                    log.warning(f"{log_prefix} Store '{store.name}' has no WhatsApp number.")
                elif not validate_indonesian_phone(store.whatsapp_number):
                    log.warning(f"{log_prefix} Store '{store.name}' has an invalid WhatsApp number: {store.whatsapp_number}")
                else:
                    whatsapp_url = build_whatsapp_url(store.whatsapp_number, message)

                notifier.publish_store_order(
                    order_number=order.order_number,
                    store={"id": store_id, "name": store.name, "whatsappNumber": store.whatsapp_number},
                    items=[
                        {"bundleId": item.bundle_id, "name": item.bundle.name, "quantity": item.quantity}
                        for item in items
                    ],
                    message=message,
                    whatsapp_url=whatsapp_url,
                )
                published += 1

            log.info(f"{log_prefix} {published} store notice(s) published.")

        except pika.exceptions.AMQPError as e:
            log.critical(f"{log_prefix} Store notification aborted: MQ error. {e}")

        except Exception as e:
            log.critical(f"{log_prefix} Unexpected error while notifying stores: {e}", exc_info=True)

        finally:
            if notifier:
                notifier.close()

    return published
