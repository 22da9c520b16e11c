# Overview: Service-layer operations for subscriptions; gate predicate, checkout, verification and webhooks.

"""
Subscription Service

- Access is decided by the owner's most recent Subscription row.
- pending -> active on a verified charge; active -> cancelled on a
  verified cancellation.
- Every gateway callback is authenticated with HMAC-SHA256 and compared
  in constant time.
"""

from __future__ import annotations

import hashlib
import hmac
import json
import logging

from ..extensions import db
from ..models import Subscription
from ..models.billing import SUBSCRIPTION_ACTIVE, SUBSCRIPTION_CANCELLED, SUBSCRIPTION_PENDING
from ..errors import ConflictError, GatewayError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

ACTIVATING_EVENTS = {"subscription.charged", "subscription.activated", "payment.captured"}
CANCELLING_EVENTS = {"subscription.cancelled"}


def hmac_sha256_hex(secret: str, message: bytes) -> str:
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


def get_latest_subscription(owner_id: int) -> Subscription | None:
    return (
        db.session.query(Subscription)
        .filter(Subscription.owner_id == owner_id)
        .order_by(Subscription.created_at.desc(), Subscription.id.desc())
        .first()
    )


def has_active_subscription(owner_id: int) -> bool:
    latest = get_latest_subscription(owner_id)
    return latest is not None and latest.is_active


def create_subscription_order(owner_id: int, *, client, config) -> Subscription:
    """
    Create a gateway subscription and record it as pending.

    Raises:
        ConflictError: the owner is already subscribed
        GatewayError: the gateway call failed
    """
    if has_active_subscription(owner_id):
        raise ConflictError("Subscription is already active")

    data = client.create_subscription(plan_id=config.get("RAZORPAY_PLAN_ID"), owner_id=owner_id)

    subscription = Subscription(
        owner_id=owner_id,
        plan_name=config.get("SUBSCRIPTION_PLAN_NAME", "CasaStock Monthly"),
        amount_cents=config.get("SUBSCRIPTION_AMOUNT_CENTS", 8900),
        currency=config.get("SUBSCRIPTION_CURRENCY", "INR"),
        status=SUBSCRIPTION_PENDING,
        gateway_subscription_id=data["id"],
        checkout_url=data.get("short_url"),
    )
    db.session.add(subscription)
    db.session.commit()

    logger.info("Created subscription %s for owner %s", subscription.gateway_subscription_id, owner_id)
    return subscription


def verify_payment(
    owner_id: int,
    *,
    payment_id: str,
    subscription_id: str,
    signature: str,
    key_secret: str | None,
) -> Subscription:
    """
    Client-side checkout confirmation.

    The signature is HMAC_SHA256(key_secret, "<payment_id>|<subscription_id>").
    """
    if not payment_id or not subscription_id or not signature:
        raise ValidationError("payment_id, subscription_id and signature are required")
    if not key_secret:
        raise GatewayError("Payment gateway is not configured")

    expected = hmac_sha256_hex(key_secret, f"{payment_id}|{subscription_id}".encode("utf-8"))
    if not hmac.compare_digest(expected.encode("utf-8"), str(signature).encode("utf-8")):
        logger.warning("Rejected payment signature for owner %s", owner_id)
        raise ValidationError("Invalid payment signature")

    subscription = (
        db.session.query(Subscription)
        .filter_by(owner_id=owner_id, gateway_subscription_id=subscription_id)
        .first()
    )
    if subscription is None:
        raise NotFoundError("Subscription not found")

    subscription.status = SUBSCRIPTION_ACTIVE
    subscription.gateway_payment_id = payment_id
    subscription.gateway_signature = signature
    db.session.commit()

    logger.info("Subscription %s activated by client verification", subscription_id)
    return subscription


def _extract_ids(payload: dict) -> tuple[str | None, str | None]:
    body = payload.get("payload") or {}
    subscription_entity = (body.get("subscription") or {}).get("entity") or {}
    payment_entity = (body.get("payment") or {}).get("entity") or {}

    subscription_id = subscription_entity.get("id") or payment_entity.get("subscription_id")
    return subscription_id, payment_entity.get("id")


def handle_webhook(raw_body: bytes, signature: str | None, *, webhook_secret: str | None) -> dict:
    """
    Apply a Razorpay webhook event.

    Returns {"status": "ok", "event": ..., "handled": bool}. Unknown events
    and unknown subscriptions are acknowledged without changes.
    """
    if not webhook_secret:
        raise GatewayError("Webhook secret is not configured")
    if not signature:
        raise ValidationError("Missing webhook signature")

    expected = hmac_sha256_hex(webhook_secret, raw_body)
    if not hmac.compare_digest(expected.encode("utf-8"), signature.encode("utf-8")):
        logger.warning("Rejected webhook with invalid signature")
        raise ValidationError("Invalid webhook signature")

    try:
        payload = json.loads(raw_body.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError):
        raise ValidationError("Invalid JSON payload")
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    event = payload.get("event")
    if event not in ACTIVATING_EVENTS and event not in CANCELLING_EVENTS:
        logger.info("Ignoring webhook event %s", event)
        return {"status": "ok", "event": event, "handled": False}

    subscription_id, payment_id = _extract_ids(payload)
    if not subscription_id:
        raise ValidationError("Webhook event has no subscription id")

    subscription = (
        db.session.query(Subscription)
        .filter_by(gateway_subscription_id=subscription_id)
        .first()
    )
    if subscription is None:
        logger.warning("Webhook %s for unknown subscription %s", event, subscription_id)
        return {"status": "ok", "event": event, "handled": False}

    if event in ACTIVATING_EVENTS:
        subscription.status = SUBSCRIPTION_ACTIVE
        if payment_id:
            subscription.gateway_payment_id = payment_id
    else:
        subscription.status = SUBSCRIPTION_CANCELLED

    db.session.commit()
    logger.info("Webhook %s applied to subscription %s", event, subscription_id)
    return {"status": "ok", "event": event, "handled": True}


def activate_manually(owner_id: int, *, plan_name: str, amount_cents: int, currency: str) -> Subscription:
    """Grant an active subscription without the gateway (operator CLI)."""
    subscription = Subscription(
        owner_id=owner_id,
        plan_name=plan_name,
        amount_cents=amount_cents,
        currency=currency,
        status=SUBSCRIPTION_ACTIVE,
    )
    db.session.add(subscription)
    db.session.commit()
    return subscription
