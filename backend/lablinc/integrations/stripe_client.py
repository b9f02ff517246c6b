"""Thin wrapper around the Stripe SDK for booking payments."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

import stripe


@dataclass(slots=True)
class PaymentIntent:
    """Simplified payment intent payload."""

    id: str
    client_secret: str | None
    status: str
    metadata: dict[str, Any]


class StripeClientError(RuntimeError):
    """Raised when Stripe interaction fails."""


def _to_minor_units(amount: Decimal) -> int:
    quantized = amount.quantize(Decimal("0.01"))
    return int((quantized * 100).to_integral_value())


def _intent_from_payload(intent: Any) -> PaymentIntent:
    metadata = intent.get("metadata") or {}
    return PaymentIntent(
        id=str(intent.get("id")),
        client_secret=intent.get("client_secret"),
        status=str(intent.get("status", "unknown")),
        metadata=dict(metadata),
    )


class StripeClient:
    """Create, confirm and refund PaymentIntents for booking totals.

    ``sdk`` defaults to the ``stripe`` module; tests pass a stand-in object
    exposing ``PaymentIntent`` and ``Refund``.
    """

    def __init__(
        self,
        secret_key: str,
        *,
        idempotency_prefix: str = "lablinc",
        sdk: Any | None = None,
    ) -> None:
        self._idempotency_prefix = idempotency_prefix
        self._stripe = sdk if sdk is not None else stripe
        self._stripe.api_key = secret_key
        self._stripe.max_network_retries = 2

    def _idempotency_key(self, seed: str | uuid.UUID | None) -> str | None:
        if seed is None:
            return None
        return f"{self._idempotency_prefix}_{seed}"

    def create_payment_intent(
        self,
        *,
        amount: Decimal,
        booking_id: uuid.UUID,
        currency: str = "inr",
        metadata: dict[str, Any] | None = None,
        customer_email: str | None = None,
        idempotency_seed: str | uuid.UUID | None = None,
    ) -> PaymentIntent:
        metadata = dict(metadata or {})
        metadata.setdefault("booking_id", str(booking_id))
        kwargs: dict[str, Any] = {
            "amount": _to_minor_units(amount),
            "currency": currency.lower(),
            "metadata": metadata,
        }
        if customer_email:
            kwargs["receipt_email"] = customer_email
        try:
            intent = self._stripe.PaymentIntent.create(
                **kwargs,
                idempotency_key=self._idempotency_key(idempotency_seed),
            )
        except stripe.StripeError as exc:
            raise StripeClientError("Failed to create payment intent") from exc
        return _intent_from_payload(intent)

    def retrieve_payment_intent(self, payment_intent_id: str) -> PaymentIntent:
        try:
            intent = self._stripe.PaymentIntent.retrieve(payment_intent_id)
        except stripe.StripeError as exc:
            raise StripeClientError("Failed to retrieve payment intent") from exc
        return _intent_from_payload(intent)

    def refund_payment_intent(
        self, payment_intent_id: str, *, amount: Decimal | None = None
    ) -> dict[str, Any]:
        kwargs: dict[str, Any] = {"payment_intent": payment_intent_id}
        if amount is not None:
            kwargs["amount"] = _to_minor_units(amount)
        try:
            refund = self._stripe.Refund.create(**kwargs)
        except stripe.StripeError as exc:
            raise StripeClientError("Failed to refund payment intent") from exc
        return {
            "status": refund.get("status", "unknown"),
            "amount": refund.get("amount"),
        }
