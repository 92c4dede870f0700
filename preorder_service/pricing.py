"""
pricing.py — Order Total Calculator

Computes the monetary breakdown of a checkout from validated cart line items:
subtotal, the service fee charged for the stores involved, and the grand total.
Items are also grouped by their owning store for per-store fulfillment and
notification.

Everything in this module is a pure computation. Persisting the result is the
caller's job (see workflow.place_order).

Currency amounts are integer Rupiah, so sums are exact. Decimal amounts are
accepted as well and stay exact.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Mapping, Sequence, Union

log = logging.getLogger(__name__)

FeeSchedule = Callable[[int], int]
StoreLookup = Union[Mapping[str, str], Callable[[str], str]]


class PricingError(Exception):
    """Base class for all calculator failures."""


class InvalidInput(PricingError):
    """The cart itself is malformed (empty, non-positive quantity, negative price)."""


class UnresolvedStore(PricingError):
    """A bundle could not be mapped to its owning store."""

    def __init__(self, bundle_id: str):
        super().__init__(f"Store for bundle '{bundle_id}' could not be resolved")
        self.bundle_id = bundle_id


@dataclass(frozen=True)
class LineItem:
    """
    A single cart line entering the calculator.

    Attributes:
        bundle_id (str): Identifier of the purchased bundle.
        quantity (int): Number of bundles, at least 1.
        unit_price (int): Price of one bundle in Rupiah, never negative.
    """
    bundle_id: str
    quantity: int
    unit_price: int

    @property
    def line_total(self):
        return self.unit_price * self.quantity


@dataclass
class OrderTotals:
    """
    Result of a calculation.

    Attributes:
        subtotal: Sum of all line totals.
        service_fee: Fee produced by the fee schedule for the number of stores.
        total: subtotal + service_fee.
        groups_by_store (Dict[str, List[LineItem]]): Items per store id, stores in
            first-seen order and items in input order.
    """
    subtotal: int
    service_fee: int
    total: int
    groups_by_store: Dict[str, List[LineItem]] = field(default_factory=dict)

    @property
    def store_count(self) -> int:
        return len(self.groups_by_store)


# --- Fee schedules ---

def per_store_fee(amount: int) -> FeeSchedule:
    """Charges `amount` once for every distinct store in the order."""
    _check_fee_amount(amount)

    def schedule(store_count: int) -> int:
        return amount * max(store_count, 0)

    return schedule


def flat_fee(amount: int) -> FeeSchedule:
    """Charges `amount` once for any order touching at least one store."""
    _check_fee_amount(amount)

    def schedule(store_count: int) -> int:
        return amount if store_count >= 1 else 0

    return schedule


FEE_SCHEDULES = {
    "per_store": per_store_fee,
    "flat": flat_fee,
}


def fee_schedule_from_config(mode: str, amount: int) -> FeeSchedule:
    """
    Builds the fee schedule selected by configuration.

    Args:
        mode (str): One of the keys of FEE_SCHEDULES ('per_store', 'flat').
        amount (int): Fee amount in Rupiah.

    Raises:
        ValueError: For an unknown mode or a negative amount.
    """
    try:
        factory = FEE_SCHEDULES[mode]
    except KeyError:
        raise ValueError(
            f"Unknown service fee mode '{mode}', expected one of {sorted(FEE_SCHEDULES)}"
        ) from None
    return factory(amount)


def _check_fee_amount(amount):
    if amount < 0:
        raise ValueError(f"Service fee amount must not be negative, got {amount}")


# --- Calculator ---

def _validate(items: Sequence[LineItem]):
    if not items:
        raise InvalidInput("Order must contain at least one item")

    for item in items:
        quantity = item.quantity
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise InvalidInput(
                f"Quantity for bundle '{item.bundle_id}' must be a positive integer, got {quantity!r}"
            )
        if item.unit_price < 0:
            raise InvalidInput(
                f"Unit price for bundle '{item.bundle_id}' must not be negative, got {item.unit_price!r}"
            )


def _resolve_store(store_of: StoreLookup, bundle_id: str) -> str:
    try:
        if callable(store_of):
            store_id = store_of(bundle_id)
        else:
            store_id = store_of[bundle_id]
    except KeyError:
        raise UnresolvedStore(bundle_id) from None

    if store_id is None:
        raise UnresolvedStore(bundle_id)
    return store_id


def group_by_store(items: Sequence[LineItem], store_of: StoreLookup) -> Dict[str, List[LineItem]]:
    """
    Partitions items by their owning store.

    Every item lands in exactly one group. Stores appear in the order they are
    first seen and items keep their input order inside a group.

    Raises:
        UnresolvedStore: If a bundle has no known store.
    """
    groups: Dict[str, List[LineItem]] = {}
    for item in items:
        store_id = _resolve_store(store_of, item.bundle_id)
        groups.setdefault(store_id, []).append(item)
    return groups


def calculate_order_totals(
        items: Sequence[LineItem],
        store_of: StoreLookup,
        fee_schedule: FeeSchedule,
) -> OrderTotals:
    """
    Computes subtotal, service fee and total for a cart.

    Args:
        items (Sequence[LineItem]): Non-empty cart lines.
        store_of: Mapping or callable resolving a bundle id to its store id.
        fee_schedule (FeeSchedule): Fee for a given number of distinct stores.

    Returns:
        OrderTotals: The breakdown plus the per-store grouping.

    Raises:
        InvalidInput: Empty cart, quantity <= 0 or negative unit price.
        UnresolvedStore: A bundle's store cannot be resolved.
    """
    _validate(items)

    subtotal = sum(item.line_total for item in items)
    groups = group_by_store(items, store_of)
    service_fee = fee_schedule(len(groups))
    total = subtotal + service_fee

    log.debug(
        f"Calculated totals: {len(items)} item(s), {len(groups)} store(s), "
        f"subtotal={subtotal}, service_fee={service_fee}, total={total}"
    )
    return OrderTotals(
        subtotal=subtotal,
        service_fee=service_fee,
        total=total,
        groups_by_store=groups,
    )
