import logging
from typing import Dict, Optional

import stripe

from app.config.settings import settings
from app.models.payment import PaymentIntentRequest, PaymentIntentResponse

logger = logging.getLogger(__name__)


class PaymentError(Exception):
    """A Stripe failure mapped to the HTTP status the client should see."""

    def __init__(self, message: str, status_code: int = 500):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class StripeClient:
    """PaymentIntents and webhook events through the Stripe SDK."""

    def __init__(self, secret_key: Optional[str] = None, webhook_secret: Optional[str] = None):
        self.secret_key = secret_key if secret_key is not None else settings.STRIPE_SECRET_KEY
        self.webhook_secret = webhook_secret if webhook_secret is not None else settings.STRIPE_WEBHOOK_SECRET

    @staticmethod
    def to_cents(amount: float) -> int:
        return int(round(amount * 100))

    @staticmethod
    def intent_metadata(request: PaymentIntentRequest) -> Dict[str, str]:
        metadata = {key: str(value) for key, value in request.metadata.items()}
        if request.service_ids:
            metadata["serviceIds"] = ",".join(request.service_ids)
        for key, value in (("planId", request.plan_id), ("userId", request.user_id), ("email", request.email)):
            if value:
                metadata[key] = value
        return metadata

    def create_payment_intent(self, request: PaymentIntentRequest) -> PaymentIntentResponse:
        if not self.secret_key:
            raise PaymentError("Payment service is not configured", 503)

        options = {"api_key": self.secret_key}
        if settings.STRIPE_API_VERSION:
            options["stripe_version"] = settings.STRIPE_API_VERSION

        try:
            intent = stripe.PaymentIntent.create(
                **options,
                amount=self.to_cents(request.amount),
                currency="usd",
                automatic_payment_methods={"enabled": True},
                metadata=self.intent_metadata(request),
            )
        except stripe.CardError as e:
            logger.warning(f"Stripe card error: {e}")
            raise PaymentError(e.user_message or str(e) or "Your card was declined", 400)
        except stripe.InvalidRequestError as e:
            logger.error(f"Stripe rejected the request: {e}")
            raise PaymentError(e.user_message or str(e) or "Payment request was rejected", 400)
        except stripe.RateLimitError as e:
            logger.warning(f"Stripe rate limit: {e}")
            raise PaymentError("Too many requests, please try again later", 429)
        except stripe.AuthenticationError as e:
            logger.error(f"Stripe authentication failed: {e}")
            raise PaymentError("Payment service configuration error", 500)
        except stripe.APIConnectionError as e:
            logger.error(f"Stripe connection failed: {e}")
            raise PaymentError("Network error connecting to payment processor", 503)
        except stripe.StripeError as e:
            logger.error(f"Stripe request failed: {e}")
            raise PaymentError("Payment processing error", 500)

        logger.info(f"Created payment intent {intent['id']} for {intent['amount']} cents")
        return PaymentIntentResponse(
            client_secret=intent["client_secret"],
            payment_intent_id=intent["id"],
            amount=intent["amount"],
            currency=intent["currency"],
        )

    def construct_event(self, payload: bytes, signature_header: Optional[str]):
        """
        Verify a ``Stripe-Signature`` header against the raw body and return
        the event. Raises PaymentError(400) on a bad signature, a stale
        timestamp or an undecodable body.
        """
        if not self.webhook_secret:
            raise PaymentError("Webhook secret is not configured", 503)

        try:
            return stripe.Webhook.construct_event(
                payload,
                signature_header or "",
                self.webhook_secret,
                tolerance=settings.STRIPE_WEBHOOK_TOLERANCE_SECONDS,
            )
        except stripe.SignatureVerificationError as e:
            raise PaymentError(f"Invalid Stripe signature: {e}", 400)
        except ValueError:
            raise PaymentError("Invalid webhook payload", 400)
