"""
main.py — FastAPI Entry Point for the Pre-Order Service

This module provides the REST API used by the storefront for checkout and for
following up on orders. It is the only place where domain errors are turned
into HTTP responses.

Responsibilities:
    • Accept checkouts and persist them atomically
    • Trigger background notification of the stores involved in an order
    • List and show the customer's orders, including the payment countdown
    • Let customers cancel orders that are still pending and unpaid
    • Provide system health information

Authentication happens upstream; the authenticated user id arrives in the
`X-User-Id` header.
"""

import math
from typing import Optional

from fastapi import BackgroundTasks, Depends, FastAPI, Header, HTTPException, Query, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .clients import StoreNotificationClient
from .config import DATABASE_ECHO, DATABASE_URL, SERVICE_FEE_AMOUNT, SERVICE_FEE_MODE
from .db import create_session_factory, dispose, init_db
from .logging_config import get_logger, setup_logging
from .models import CreateOrderRequest, order_detail, order_summary
from .pricing import InvalidInput, PricingError, UnresolvedStore, fee_schedule_from_config
from .workflow import (
    BundleUnavailable,
    CheckoutError,
    InvalidFilter,
    OrderNotCancellable,
    OrderNotFound,
    cancel_order,
    get_order,
    list_orders,
    notify_stores_workflow,
    place_order,
)

# Initialization
setup_logging()
log = get_logger(__name__)
app = FastAPI(title="Pre-Order Checkout Service")

_CLIENT_ERRORS = (InvalidInput, BundleUnavailable, InvalidFilter, OrderNotCancellable)


# Startup / Shutdown: database and notification wiring
@app.on_event("startup")
def on_startup():
    """
    FastAPI startup event handler.

    Builds the database engine and session factory, creates missing tables and
    selects the service fee schedule from configuration. Everything is kept on
    `app.state` so request handlers never touch module-level connections.
    """
    log.info("Pre-order service starting...")
    app.state.session_factory = create_session_factory(DATABASE_URL, echo=DATABASE_ECHO)
    init_db(app.state.session_factory)
    app.state.fee_schedule = fee_schedule_from_config(SERVICE_FEE_MODE, SERVICE_FEE_AMOUNT)
    app.state.notifier_factory = StoreNotificationClient
    log.info(f"Service fee schedule: {SERVICE_FEE_MODE} ({SERVICE_FEE_AMOUNT}).")


@app.on_event("shutdown")
def on_shutdown():
    session_factory = getattr(app.state, "session_factory", None)
    if session_factory is not None:
        dispose(session_factory)
    log.info("Pre-order service stopped.")


# Dependencies
def get_session(request: Request):
    with request.app.state.session_factory() as session:
        yield session


def get_user_id(x_user_id: Optional[str] = Header(None, alias="X-User-Id")) -> str:
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return x_user_id


# Error mapping
@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={"error": "Invalid data", "details": jsonable_encoder(exc.errors())},
    )


@app.exception_handler(PricingError)
@app.exception_handler(CheckoutError)
async def domain_error_handler(request: Request, exc: Exception):
    if isinstance(exc, _CLIENT_ERRORS):
        content = {"error": str(exc)}
        if isinstance(exc, BundleUnavailable):
            content["details"] = exc.bundle_ids
        return JSONResponse(status_code=400, content=content)

    if isinstance(exc, OrderNotFound):
        return JSONResponse(status_code=404, content={"error": "Order not found"})

    if isinstance(exc, UnresolvedStore):
        log.critical(f"Catalogue inconsistency during {request.method} {request.url.path}: {exc}")
    else:
        log.critical(f"Unhandled domain error during {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    log.critical(
        f"Unexpected error during {request.method} {request.url.path}: {exc}",
        exc_info=(type(exc), exc, exc.__traceback__),
    )
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


# API Endpoints: Storefront → Pre-Order Service
@app.post("/api/orders")
def create_order(
        order_request: CreateOrderRequest,
        request: Request,
        background_tasks: BackgroundTasks,
        user_id: str = Depends(get_user_id),
        session=Depends(get_session),
):
    """
    Performs a checkout for the authenticated customer.

    The order, its items and its payment record are created in one database
    transaction. Afterwards the stores involved are notified in the background.

    Args:
        order_request (CreateOrderRequest): Validated checkout payload.
        request (Request): Used to reach the application state.
        background_tasks (BackgroundTasks): Runs the store notification after the response.
        user_id (str): Authenticated user from the X-User-Id header.
        session: Database session for this request.

    Returns:
        dict: success flag, message and the order summary (orderNumber,
        subtotalAmount, serviceFee, totalAmount, orderStatus, paymentStatus, ...).

    Raises:
        HTTPException(400): Invalid cart or unavailable bundles.
        HTTPException(500): Catalogue inconsistency or unexpected failure.
    """
    result = place_order(session, user_id, order_request, request.app.state.fee_schedule)

    background_tasks.add_task(
        notify_stores_workflow,
        order_id=result.order.id,
        session_factory=request.app.state.session_factory,
        notifier_factory=request.app.state.notifier_factory,
    )

    return {
        "success": True,
        "message": "Order created",
        "order": order_summary(result.order),
    }


@app.get("/api/orders")
def read_orders(
        page: int = Query(1, ge=1),
        limit: int = Query(10, ge=1, le=100),
        orderStatus: Optional[str] = None,
        paymentStatus: Optional[str] = None,
        user_id: str = Depends(get_user_id),
        session=Depends(get_session),
):
    """
    Lists the customer's orders, newest first.

    Each order carries its payment state and, while payment is still owed, the
    payment countdown so that the client can refresh its display locally.
    """
    orders, total = list_orders(
        session, user_id, page=page, limit=limit,
        order_status=orderStatus, payment_status=paymentStatus,
    )
    return {
        "orders": [order_detail(order) for order in orders],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "totalPages": math.ceil(total / limit),
        },
    }


@app.get("/api/orders/{order_id}")
def read_order(order_id: str, user_id: str = Depends(get_user_id), session=Depends(get_session)):
    return {"order": order_detail(get_order(session, user_id, order_id))}


@app.post("/api/orders/{order_id}/cancel")
def cancel(order_id: str, user_id: str = Depends(get_user_id), session=Depends(get_session)):
    order = cancel_order(session, user_id, order_id)
    return {"success": True, "message": "Order cancelled", "order": order_detail(order)}


# Health Check Endpoint
@app.get("/health")
def health_check():
    """
    Simple health check endpoint for monitoring systems and container orchestrators.
    """
    return {"status": "ok"}
