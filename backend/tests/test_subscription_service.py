"""
Subscription billing tests: checkout creation, client verification and
HMAC-authenticated webhooks.
"""

import hashlib
import hmac
import json

import pytest

from casastock.errors import ConflictError, GatewayError, NotFoundError, ValidationError
from casastock.models import Subscription
from casastock.services import subscription_service

from conftest import KEY_SECRET, WEBHOOK_SECRET


def _sign(secret: str, message: bytes) -> str:
    return hmac.new(secret.encode(), message, hashlib.sha256).hexdigest()


def _webhook_body(event: str, subscription_id: str | None, payment_id: str | None = "pay_1") -> bytes:
    payload = {"event": event, "payload": {}}
    if subscription_id:
        payload["payload"]["subscription"] = {"entity": {"id": subscription_id}}
    if payment_id:
        payload["payload"]["payment"] = {"entity": {"id": payment_id}}
    return json.dumps(payload).encode()


@pytest.fixture
def pending(app, owner, gateway):
    return subscription_service.create_subscription_order(owner.id, client=gateway, config=app.config)


def test_no_subscription_means_gate_closed(owner):
    assert subscription_service.get_latest_subscription(owner.id) is None
    assert subscription_service.has_active_subscription(owner.id) is False


def test_create_order_records_pending_subscription(app, owner, gateway, pending):
    assert pending.status == "pending"
    assert pending.gateway_subscription_id.startswith("sub_test_")
    assert pending.checkout_url.startswith("https://rzp.io/")
    assert pending.plan_name == "CasaStock Monthly"
    assert gateway.calls == [{"plan_id": "plan_test", "owner_id": owner.id}]
    assert subscription_service.has_active_subscription(owner.id) is False


def test_create_order_conflicts_when_already_active(app, owner, gateway):
    subscription_service.activate_manually(owner.id, plan_name="P", amount_cents=1, currency="INR")
    with pytest.raises(ConflictError):
        subscription_service.create_subscription_order(owner.id, client=gateway, config=app.config)
    assert gateway.calls == []


def test_gateway_failure_writes_nothing(app, owner, gateway, db_session):
    gateway.fail_with = GatewayError("Payment gateway unavailable")
    with pytest.raises(GatewayError):
        subscription_service.create_subscription_order(owner.id, client=gateway, config=app.config)
    assert db_session.query(Subscription).count() == 0


def test_verify_payment_activates(owner, pending):
    signature = _sign(KEY_SECRET, f"pay_abc|{pending.gateway_subscription_id}".encode())

    sub = subscription_service.verify_payment(
        owner.id,
        payment_id="pay_abc",
        subscription_id=pending.gateway_subscription_id,
        signature=signature,
        key_secret=KEY_SECRET,
    )

    assert sub.status == "active"
    assert sub.gateway_payment_id == "pay_abc"
    assert subscription_service.has_active_subscription(owner.id) is True


def test_verify_payment_rejects_bad_signature(owner, pending):
    with pytest.raises(ValidationError):
        subscription_service.verify_payment(
            owner.id,
            payment_id="pay_abc",
            subscription_id=pending.gateway_subscription_id,
            signature="0" * 64,
            key_secret=KEY_SECRET,
        )
    assert subscription_service.has_active_subscription(owner.id) is False


def test_verify_payment_for_other_owner_is_not_found(other_owner, pending):
    signature = _sign(KEY_SECRET, f"pay_abc|{pending.gateway_subscription_id}".encode())
    with pytest.raises(NotFoundError):
        subscription_service.verify_payment(
            other_owner.id,
            payment_id="pay_abc",
            subscription_id=pending.gateway_subscription_id,
            signature=signature,
            key_secret=KEY_SECRET,
        )


@pytest.mark.parametrize("event", ["subscription.charged", "subscription.activated", "payment.captured"])
def test_webhook_activating_events(owner, pending, event):
    body = _webhook_body(event, pending.gateway_subscription_id, "pay_hook")

    result = subscription_service.handle_webhook(body, _sign(WEBHOOK_SECRET, body), webhook_secret=WEBHOOK_SECRET)

    assert result["handled"] is True
    latest = subscription_service.get_latest_subscription(owner.id)
    assert latest.status == "active"
    assert latest.gateway_payment_id == "pay_hook"


def test_webhook_cancellation(owner, pending):
    activate = _webhook_body("subscription.activated", pending.gateway_subscription_id)
    subscription_service.handle_webhook(activate, _sign(WEBHOOK_SECRET, activate), webhook_secret=WEBHOOK_SECRET)

    cancel = _webhook_body("subscription.cancelled", pending.gateway_subscription_id, None)
    subscription_service.handle_webhook(cancel, _sign(WEBHOOK_SECRET, cancel), webhook_secret=WEBHOOK_SECRET)

    assert subscription_service.get_latest_subscription(owner.id).status == "cancelled"
    assert subscription_service.has_active_subscription(owner.id) is False


def test_webhook_payment_entity_carries_subscription_id(owner, pending):
    body = json.dumps({
        "event": "payment.captured",
        "payload": {"payment": {"entity": {"id": "pay_x", "subscription_id": pending.gateway_subscription_id}}},
    }).encode()

    subscription_service.handle_webhook(body, _sign(WEBHOOK_SECRET, body), webhook_secret=WEBHOOK_SECRET)

    assert subscription_service.has_active_subscription(owner.id) is True


def test_webhook_rejects_bad_signature(owner, pending):
    body = _webhook_body("subscription.charged", pending.gateway_subscription_id)
    with pytest.raises(ValidationError):
        subscription_service.handle_webhook(body, "deadbeef", webhook_secret=WEBHOOK_SECRET)
    with pytest.raises(ValidationError):
        subscription_service.handle_webhook(body, None, webhook_secret=WEBHOOK_SECRET)
    assert subscription_service.has_active_subscription(owner.id) is False


def test_non_ascii_signatures_rejected(owner, pending):
    body = _webhook_body("subscription.charged", pending.gateway_subscription_id)
    with pytest.raises(ValidationError):
        subscription_service.handle_webhook(body, "\u00e9abc", webhook_secret=WEBHOOK_SECRET)

    with pytest.raises(ValidationError):
        subscription_service.verify_payment(
            owner.id,
            payment_id="pay_abc",
            subscription_id=pending.gateway_subscription_id,
            signature="\u00fc" * 64,
            key_secret=KEY_SECRET,
        )
    assert subscription_service.has_active_subscription(owner.id) is False


def test_webhook_ignores_unrelated_events(owner, pending):
    body = _webhook_body("invoice.paid", pending.gateway_subscription_id)
    result = subscription_service.handle_webhook(body, _sign(WEBHOOK_SECRET, body), webhook_secret=WEBHOOK_SECRET)

    assert result == {"status": "ok", "event": "invoice.paid", "handled": False}
    assert subscription_service.get_latest_subscription(owner.id).status == "pending"


def test_webhook_handled_event_without_subscription_id(owner):
    body = _webhook_body("subscription.charged", None, None)
    with pytest.raises(ValidationError):
        subscription_service.handle_webhook(body, _sign(WEBHOOK_SECRET, body), webhook_secret=WEBHOOK_SECRET)


def test_latest_subscription_decides_access(app, owner, gateway):
    subscription_service.activate_manually(owner.id, plan_name="P", amount_cents=1, currency="INR")
    assert subscription_service.has_active_subscription(owner.id) is True

    older = subscription_service.get_latest_subscription(owner.id)
    older.status = "cancelled"
    subscription_service.create_subscription_order(owner.id, client=gateway, config=app.config)

    assert subscription_service.get_latest_subscription(owner.id).status == "pending"
    assert subscription_service.has_active_subscription(owner.id) is False
