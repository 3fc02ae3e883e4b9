"""
Stripe wrapper for challenge reward escrow.
"""
import logging
from dataclasses import dataclass
from typing import Any, Optional

import stripe

from honeybadger.core.config import settings
from honeybadger.core.errors import UpstreamUnavailable, ValidationFailed

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RewardIntent:
    id: str
    client_secret: Optional[str]


class PaymentService:
    """Creates and confirms payment intents for MONEY rewards."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        webhook_secret: Optional[str] = None,
        currency: Optional[str] = None,
    ):
        self.api_key = api_key if api_key is not None else settings.STRIPE_SECRET_KEY
        self.webhook_secret = webhook_secret if webhook_secret is not None else settings.STRIPE_WEBHOOK_SECRET
        self.currency = currency or settings.PAYMENT_CURRENCY

    def is_configured(self) -> bool:
        return bool(self.api_key)

    def create_reward_intent(self, amount: float, sender_id: int, recipient_id: int) -> RewardIntent:
        """
        Reserve a reward with the processor.

        Raises:
            UpstreamUnavailable: Processor not configured or request failed
        """
        if not self.is_configured():
            logger.error("Payment intent requested but STRIPE_SECRET_KEY is not set")
            raise UpstreamUnavailable("Payment setup failed: Unable to process payment for this challenge")

        try:
            intent = stripe.PaymentIntent.create(
                api_key=self.api_key,
                amount=int(round(amount * 100)),  # cents
                currency=self.currency,
                automatic_payment_methods={"enabled": True},
                metadata={
                    "type": "challenge_reward",
                    "sender_id": str(sender_id),
                    "recipient_id": str(recipient_id),
                },
            )
        except stripe.StripeError as e:
            logger.error(f"Stripe payment intent creation failed: {e}")
            raise UpstreamUnavailable("Payment setup failed: Unable to process payment for this challenge")

        return RewardIntent(id=intent.id, client_secret=intent.client_secret)

    def confirm_intent(self, payment_intent_id: str) -> str:
        """
        Confirm a reward payment and return its resulting status.

        Raises:
            UpstreamUnavailable: Processor not configured or request failed
        """
        if not self.is_configured():
            raise UpstreamUnavailable("Payment confirmation failed: payments are not configured")
        try:
            intent = stripe.PaymentIntent.confirm(payment_intent_id, api_key=self.api_key)
        except stripe.StripeError as e:
            logger.error(f"Error confirming payment {payment_intent_id}: {e}")
            raise UpstreamUnavailable("Payment confirmation failed: Unable to confirm payment")
        return str(intent.status)

    def construct_event(self, payload: bytes, signature: Optional[str]) -> Any:
        """
        Verify and parse a webhook delivery.

        Raises:
            ValidationFailed: Signature or payload rejected
        """
        try:
            return stripe.Webhook.construct_event(payload, signature or "", self.webhook_secret)
        except (ValueError, stripe.SignatureVerificationError) as e:
            logger.error(f"Webhook signature verification failed: {e}")
            raise ValidationFailed(f"Webhook Error: {e}")
