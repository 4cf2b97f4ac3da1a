"""
# `localchef/routers/payments.py` - Order payments (iyzico Checkout Form)

## Flow
1. `POST /create-payment-intent {orderId}`: the buyer asks for a hosted payment
   page. The amount is `price * quantity` of the stored order. The session token
   and the cancel URL are recorded on the order.
2. The buyer pays on iyzico and is sent back to the front-end with the token.
3. `POST /payment-success {orderId, token}`: the front-end reports back. The
   token must be the one recorded on the order; the gateway confirms it. A paid
   confirmation inserts one payment record (keyed by transaction id, so a repeated
   call does not double book) and marks the order `paymentStatus=paid`.
   Otherwise the buyer is sent to the cancel URL.

## Reads
- `GET /payments?email=`: the caller's payments.
- `GET /payments/{id}`: one payment; the caller must be its customer.
"""
import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Query

from localchef.config import Settings
from localchef.core.errors import Conflict, InvalidArgument
from localchef.core.security import get_app_settings, get_payments, get_principal, get_store, json_body, loaded
from localchef.integrations.payment import PaymentGateway
from localchef.repositories.base import DESCENDING, DocumentStore, DuplicateKeyError
from localchef.schemas.payment import PaymentIntentCreate, PaymentSuccess
from localchef.schemas.principal import Principal

logger = logging.getLogger("localchef.payments")

router = APIRouter(tags=["Payments"])


def _order_amount(order: dict) -> float:
    return round(float(order.get("price") or 0) * int(order.get("quantity") or 1), 2)


@router.post("/create-payment-intent")
def create_payment_intent(
    payload: PaymentIntentCreate = Depends(json_body(PaymentIntentCreate)),
    order: dict = Depends(loaded("orders")),
    principal: Principal = Depends(get_principal),
    store: DocumentStore = Depends(get_store),
    payments: PaymentGateway = Depends(get_payments),
    settings: Settings = Depends(get_app_settings),
):
    if order.get("paymentStatus") == "paid":
        raise Conflict("Order already paid")
    if order.get("orderStatus") == "cancelled":
        raise Conflict("Order is cancelled")

    base = settings.client_url.rstrip("/")
    success_url = f"{base}/payment-success?orderId={payload.orderId}"
    cancel_url = f"{base}/payment-cancelled?orderId={payload.orderId}"

    session = payments.create_payable_session(
        _order_amount(order),
        success_url,
        cancel_url,
        reference=payload.orderId,
        buyer_email=principal.email,
        description=order.get("mealName") or "Meal order",
    )
    store.orders.update_by_id(order["_id"], {
        "paymentToken": session.token,
        "paymentCancelUrl": cancel_url,
    })
    logger.info("Payment session opened for order %s", payload.orderId)
    return {"url": session.redirect_url, "token": session.token}


@router.post("/payment-success")
def payment_success(
    payload: PaymentSuccess = Depends(json_body(PaymentSuccess)),
    order: dict = Depends(loaded("orders")),
    principal: Principal = Depends(get_principal),
    store: DocumentStore = Depends(get_store),
    payments: PaymentGateway = Depends(get_payments),
):
    if order.get("paymentToken") != payload.token:
        raise InvalidArgument("Payment token does not match the order")

    confirmation = payments.confirm(payload.token)
    if not confirmation.paid:
        logger.info("Payment for order %s not completed (%s)", payload.orderId, confirmation.status)
        return {"success": False, "redirect": order.get("paymentCancelUrl")}

    record = {
        "transactionId": confirmation.transaction_id,
        "orderId": payload.orderId,
        "customerEmail": principal.email,
        "chefEmail": order.get("chefEmail"),
        "mealName": order.get("mealName"),
        "amount": confirmation.amount,
        "currency": confirmation.currency,
        "status": confirmation.status,
        "paidAt": datetime.now(timezone.utc),
    }
    try:
        payment_id = store.payments.insert_one(record, unique_key=confirmation.transaction_id).inserted_id
    except DuplicateKeyError:
        existing = store.payments.find_one({"transactionId": confirmation.transaction_id})
        payment_id = existing["_id"] if existing else None

    store.orders.update_by_id(order["_id"], {
        "paymentStatus": "paid",
        "transactionId": confirmation.transaction_id,
    })
    logger.info("Order %s paid, transaction %s", payload.orderId, confirmation.transaction_id)
    return {"success": True, "paymentId": payment_id, "transactionId": confirmation.transaction_id}


@router.get("/payments")
def my_payments(
    email: str = Query(..., description="Customer e-mail; must be the caller"),
    store: DocumentStore = Depends(get_store),
):
    return store.payments.find({"customerEmail": email}, sort=("paidAt", DESCENDING))


@router.get("/payments/{id}")
def get_payment(id: str, payment: dict = Depends(loaded("payments"))):
    return payment
