"""
Unit tests for the Stripe webhook endpoint.

Signature verification is patched out; each test hands the handler a
decoded event.
"""

import pytest
import stripe

from packages.billing.models.domain.enums import BillingRole, SubscriptionStatus
from tests.factories.directory_factory import DirectoryFactory

WEBHOOK_URL = "/api/v1/webhooks/stripe"


def _event(event_type: str, obj: dict) -> dict:
    return {
        "id": "evt_123",
        "type": event_type,
        "data": {"object": obj},
        "created": 1760000000,
        "livemode": False,
    }


@pytest.fixture
def stripe_event(monkeypatch):
    """Make construct_event return whatever event the test sets."""
    state = {"event": None}

    def construct_event(payload, sig_header, secret):
        return state["event"]

    monkeypatch.setattr(stripe.Webhook, "construct_event", construct_event)
    return state


async def _post(client):
    return await client.post(
        WEBHOOK_URL, content=b"{}", headers={"stripe-signature": "t=1,v1=abc"}
    )


@pytest.mark.asyncio
class TestSignature:
    async def test_missing_signature(self, client):
        response = await client.post(WEBHOOK_URL, content=b"{}")

        assert response.status_code == 400
        assert response.json()["detail"] == "Missing stripe-signature header"

    async def test_invalid_signature(self, client, monkeypatch):
        def construct_event(payload, sig_header, secret):
            raise stripe.SignatureVerificationError("bad signature", sig_header)

        monkeypatch.setattr(stripe.Webhook, "construct_event", construct_event)

        response = await _post(client)

        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid signature"

    async def test_invalid_payload(self, client, stripe_event):
        stripe_event["event"] = {"id": "evt_123", "type": "invoice.paid"}

        response = await _post(client)

        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid webhook payload"


@pytest.mark.asyncio
class TestEvents:
    async def test_checkout_completed_records_subscription(
        self, client, stripe_event, memory_store, mock_payment
    ):
        stripe_event["event"] = _event(
            "checkout.session.completed",
            {
                "id": "cs_test_123",
                "customer": "cus_123",
                "subscription": "sub_123",
                "metadata": {
                    "billing_owner_id": "parent-1",
                    "role": "parent",
                    "package_id": "standard",
                },
            },
        )

        response = await _post(client)

        assert response.status_code == 200
        assert response.json() == {"status": "success"}
        mock_payment.retrieve_subscription.assert_awaited_once_with("sub_123")
        subscription = await memory_store.get_subscription("parent-1")
        assert subscription.status == SubscriptionStatus.ACTIVE
        assert subscription.limits == {"children": 5}

    async def test_checkout_without_metadata_is_acknowledged(
        self, client, stripe_event, memory_store
    ):
        stripe_event["event"] = _event(
            "checkout.session.completed", {"id": "cs_test_123", "subscription": "sub_123"}
        )

        response = await _post(client)

        assert response.status_code == 200
        assert await memory_store.get_subscription("parent-1") is None

    async def test_invoice_paid_reactivates(self, client, stripe_event, memory_store):
        await DirectoryFactory.create_subscription(
            memory_store,
            "parent-1",
            BillingRole.PARENT,
            "basic",
            status=SubscriptionStatus.PAST_DUE,
            stripe_subscription_id="sub_123",
        )
        stripe_event["event"] = _event(
            "invoice.paid", {"id": "in_123", "subscription": "sub_123", "amount_paid": 999}
        )

        response = await _post(client)

        assert response.status_code == 200
        subscription = await memory_store.get_subscription("parent-1")
        assert subscription.status == SubscriptionStatus.ACTIVE

    async def test_payment_failed_marks_past_due(self, client, stripe_event, memory_store):
        await DirectoryFactory.create_subscription(
            memory_store, "parent-1", BillingRole.PARENT, "basic", stripe_subscription_id="sub_123"
        )
        stripe_event["event"] = _event(
            "invoice.payment_failed", {"id": "in_123", "subscription": "sub_123", "amount_due": 999}
        )

        response = await _post(client)

        assert response.status_code == 200
        subscription = await memory_store.get_subscription("parent-1")
        assert subscription.status == SubscriptionStatus.PAST_DUE

    async def test_subscription_deleted(self, client, stripe_event, memory_store):
        await DirectoryFactory.create_subscription(
            memory_store, "parent-1", BillingRole.PARENT, "basic", stripe_subscription_id="sub_123"
        )
        stripe_event["event"] = _event(
            "customer.subscription.deleted", {"id": "sub_123", "status": "canceled"}
        )

        response = await _post(client)

        assert response.status_code == 200
        subscription = await memory_store.get_subscription("parent-1")
        assert subscription.status == SubscriptionStatus.CANCELED

    async def test_stale_transition_is_ignored(self, client, stripe_event, memory_store):
        await DirectoryFactory.create_subscription(
            memory_store,
            "parent-1",
            BillingRole.PARENT,
            "basic",
            status=SubscriptionStatus.CANCELED,
            stripe_subscription_id="sub_123",
        )
        stripe_event["event"] = _event(
            "invoice.payment_failed", {"id": "in_123", "subscription": "sub_123"}
        )

        response = await _post(client)

        assert response.status_code == 200
        assert response.json() == {"status": "ignored"}
        subscription = await memory_store.get_subscription("parent-1")
        assert subscription.status == SubscriptionStatus.CANCELED

    async def test_unhandled_event_type(self, client, stripe_event):
        stripe_event["event"] = _event("customer.created", {"id": "cus_123"})

        response = await _post(client)

        assert response.status_code == 200
        assert response.json() == {"status": "success"}

    async def test_unexpected_failure_returns_500(self, client, stripe_event, mock_payment):
        mock_payment.retrieve_subscription.side_effect = RuntimeError("stripe down")
        stripe_event["event"] = _event(
            "checkout.session.completed",
            {
                "id": "cs_test_123",
                "subscription": "sub_123",
                "metadata": {"billing_owner_id": "parent-1", "role": "parent", "package_id": "basic"},
            },
        )

        response = await _post(client)

        assert response.status_code == 500
