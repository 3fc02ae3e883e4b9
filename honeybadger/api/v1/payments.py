"""
Reward payment endpoints.
"""
import logging
from typing import Any, List, Optional

from fastapi import APIRouter, Depends, Header, Request
from sqlalchemy.orm import Session

from honeybadger.core.dependencies import get_current_active_user, get_db, get_payment_service
from honeybadger.models.user import User
from honeybadger.schemas.challenge import PaymentConfirm, PaymentHistoryItem
from honeybadger.services import challenge_service
from honeybadger.services.payment_service import PaymentService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/confirm-payment/{challenge_id}")
def confirm_payment(
    challenge_id: int,
    confirm_in: PaymentConfirm,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
    payments: PaymentService = Depends(get_payment_service),
) -> Any:
    """
    Confirm the reward payment of a completed challenge (sender only).

    Raises:
        NotFound: Challenge not eligible for payment
        ValidationFailed: Payment did not succeed
        UpstreamUnavailable: Processor error
    """
    payment_status = challenge_service.confirm_reward_payment(
        db, current_user, challenge_id, confirm_in.payment_intent_id, payments
    )
    return {"message": "Payment processed successfully", "payment_status": payment_status}


@router.post("/webhook")
async def payment_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(None, alias="Stripe-Signature"),
    payments: PaymentService = Depends(get_payment_service),
) -> Any:
    """
    Stripe webhook. The raw body is verified against the signature header.
    """
    payload = await request.body()
    event = payments.construct_event(payload, stripe_signature)

    event_type = event["type"]
    if event_type == "payment_intent.succeeded":
        logger.info(f"Payment succeeded: {event['data']['object']['id']}")
    elif event_type == "payment_intent.payment_failed":
        logger.warning(f"Payment failed: {event['data']['object']['id']}")
    else:
        logger.info(f"Unhandled event type: {event_type}")

    return {"received": True}


@router.get("/history", response_model=List[PaymentHistoryItem])
def payment_history(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    """
    Challenges the current user sent with a money reward, newest first.
    """
    return challenge_service.payment_history(db, current_user)
