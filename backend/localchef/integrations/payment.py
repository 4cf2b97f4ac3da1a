"""
localchef/integrations/payment.py - Payment gateway (iyzico) integration.

Wraps iyzico's hosted Checkout Form through the iyzipay SDK:
- `create_payable_session` initializes a checkout form and returns the hosted
  payment page URL together with the session token.
- `confirm` retrieves the checkout form result for a token and reports whether
  the buyer actually paid.

iyzico posts every outcome to a single callback URL, so the success redirect is
used as the callback; the cancel redirect is handed back to the caller, which
sends the buyer there when confirmation reports the session unpaid.

If no API keys are configured the gateway runs in simulation mode: sessions
redirect straight to the success URL and confirm as paid. Useful for
development, never for production.
"""
import json
import logging
import uuid
from dataclasses import dataclass
from typing import Dict, Optional

import iyzipay

from localchef.core.errors import Internal

logger = logging.getLogger("localchef.payment")

SIMULATED_PREFIX = "SIMULATED-"


class PaymentError(Internal):
    default_message = "Payment provider error"


@dataclass
class PayableSession:
    token: str
    redirect_url: str


@dataclass
class PaymentConfirmation:
    paid: bool
    transaction_id: Optional[str]
    amount: float
    currency: str
    reference: Optional[str]
    status: str


class PaymentGateway:
    def create_payable_session(self, amount: float, success_redirect: str, cancel_redirect: str, *,
                               reference: str, buyer_email: str, description: str = "Meal order") -> PayableSession:
        raise NotImplementedError

    def confirm(self, token: str) -> PaymentConfirmation:
        raise NotImplementedError


def _with_query(url: str, **params) -> str:
    sep = "&" if "?" in url else "?"
    return url + sep + "&".join(f"{k}={v}" for k, v in params.items())


def _parse_response(response) -> dict:
    # The SDK returns an http.client.HTTPResponse; older versions return a dict
    if isinstance(response, dict):
        return response
    raw = response.read().decode('utf-8') if hasattr(response, 'read') else str(response)
    return json.loads(raw)


class IyzicoPaymentGateway(PaymentGateway):
    def __init__(self, api_key: str = '', secret_key: str = '', base_url: str = 'sandbox-api.iyzipay.com',
                 currency: str = 'TRY', locale: str = 'tr'):
        self.options = {
            'api_key': api_key,
            'secret_key': secret_key,
            'base_url': base_url,
        }
        self.currency = currency
        self.locale = locale
        self._simulated: Dict[str, PaymentConfirmation] = {}

    @property
    def simulated(self) -> bool:
        return not self.options['api_key'] or not self.options['secret_key']

    def create_payable_session(self, amount: float, success_redirect: str, cancel_redirect: str, *,
                               reference: str, buyer_email: str, description: str = "Meal order") -> PayableSession:
        if amount <= 0:
            raise PaymentError("Payment amount must be positive")

        if self.simulated:
            logger.info("Iyzico API keys not set - simulating checkout for %s", reference)
            token = SIMULATED_PREFIX + uuid.uuid4().hex
            self._simulated[token] = PaymentConfirmation(
                paid=True, transaction_id=token, amount=amount, currency=self.currency,
                reference=reference, status="SUCCESS",
            )
            return PayableSession(token=token, redirect_url=_with_query(success_redirect, token=token))

        price = f"{amount:.2f}"
        address = {
            "contactName": buyer_email,
            "city": "Istanbul",
            "country": "Turkey",
            "address": "N/A",
        }
        request = {
            "locale": self.locale,
            "conversationId": reference,
            "price": price,
            "paidPrice": price,
            "currency": self.currency,
            "basketId": reference,
            "paymentGroup": "PRODUCT",
            "callbackUrl": success_redirect,
            "enabledInstallments": ["1"],
            "buyer": {
                "id": buyer_email,
                "name": buyer_email.split("@")[0],
                "surname": buyer_email.split("@")[0],
                "email": buyer_email,
                "identityNumber": "11111111111",  # iyzico requires one; we do not collect it
                "registrationAddress": "N/A",
                "ip": "0.0.0.0",
                "city": "Istanbul",
                "country": "Turkey",
            },
            "shippingAddress": address,
            "billingAddress": address,
            "basketItems": [{
                "id": reference,
                "name": description,
                "category1": "Food",
                "itemType": "PHYSICAL",
                "price": price,
            }],
        }
        try:
            response = _parse_response(iyzipay.CheckoutFormInitialize().create(request, self.options))
        except Exception as exc:
            # network or SDK failure
            logger.exception("iyzico checkout initialize failed for %s", reference)
            raise PaymentError() from exc

        if response.get('status') != 'success' or not response.get('paymentPageUrl'):
            logger.error("iyzico refused checkout for %s: %s", reference, response.get('errorMessage'))
            raise PaymentError()
        return PayableSession(token=response['token'], redirect_url=response['paymentPageUrl'])

    def confirm(self, token: str) -> PaymentConfirmation:
        if token.startswith(SIMULATED_PREFIX):
            if not self.simulated or token not in self._simulated:
                return PaymentConfirmation(paid=False, transaction_id=None, amount=0.0, currency=self.currency,
                                           reference=None, status="FAILURE")
            return self._simulated[token]

        try:
            response = _parse_response(iyzipay.CheckoutForm().retrieve(
                {"locale": self.locale, "token": token}, self.options))
        except Exception as exc:
            logger.exception("iyzico checkout retrieve failed")
            raise PaymentError() from exc

        paid = response.get('status') == 'success' and response.get('paymentStatus') == 'SUCCESS'
        return PaymentConfirmation(
            paid=paid,
            transaction_id=response.get('paymentId'),
            amount=float(response.get('paidPrice') or 0),
            currency=response.get('currency') or self.currency,
            reference=response.get('basketId') or response.get('conversationId'),
            status=response.get('paymentStatus') or response.get('status') or "UNKNOWN",
        )
