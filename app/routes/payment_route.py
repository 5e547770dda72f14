import logging

from fastapi import APIRouter, Depends, Header, HTTPException, Request
from typing import Optional

from app.config.settings import settings
from app.models.payment import PaymentConfig, PaymentIntentRequest, PaymentIntentResponse, WebhookAck
from app.services.payment_service import PaymentError, StripeClient

logger = logging.getLogger(__name__)
router = APIRouter()


def get_stripe_client() -> StripeClient:
    return StripeClient()


@router.get("/payments/config", response_model=PaymentConfig)
def payment_config():
    return PaymentConfig(publishable_key=settings.STRIPE_PUBLIC_KEY)


@router.post("/create-payment-intent", response_model=PaymentIntentResponse)
def create_payment_intent(request: PaymentIntentRequest, stripe: StripeClient = Depends(get_stripe_client)):
    try:
        return stripe.create_payment_intent(request)
    except PaymentError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Error creating payment intent: {e}")
        raise HTTPException(status_code=500, detail="An error occurred while processing payment")


@router.post("/stripe-webhook", response_model=WebhookAck)
async def stripe_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(None, alias="Stripe-Signature"),
    stripe: StripeClient = Depends(get_stripe_client),
):
    payload = await request.body()
    try:
        event = stripe.construct_event(payload, stripe_signature)
    except PaymentError as e:
        logger.warning(f"Rejected Stripe webhook: {e.message}")
        raise HTTPException(status_code=e.status_code, detail=e.message)

    event_type = event["type"]
    intent_id = event["data"]["object"].get("id")
    if event_type == "payment_intent.succeeded":
        logger.info(f"Payment succeeded: {intent_id}")
    elif event_type == "payment_intent.payment_failed":
        logger.warning(f"Payment failed: {intent_id}")
    else:
        logger.info(f"Unhandled Stripe event type {event_type}")

    return WebhookAck(received=True, type=event_type)
