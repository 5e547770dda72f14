from typing import Dict, List, Optional

from pydantic import Field

from app.models.base import CamelModel


class PaymentIntentRequest(CamelModel):
    amount: float = Field(..., ge=0.5, description="Amount in dollars")
    service_ids: List[str] = []
    plan_id: Optional[str] = None
    user_id: Optional[str] = None
    email: Optional[str] = None
    metadata: Dict[str, str] = {}


class PaymentIntentResponse(CamelModel):
    client_secret: str
    payment_intent_id: str
    amount: int
    currency: str = "usd"


class PaymentConfig(CamelModel):
    publishable_key: Optional[str] = None


class WebhookAck(CamelModel):
    received: bool = True
    type: Optional[str] = None
