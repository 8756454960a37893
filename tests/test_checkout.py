"""Tests for POST /api/stripe/checkout and GET /api/stripe/cancel.

Covers:
- Role, ownership and payload validation
- Checkout Session parameters (amount, currency, metadata, redirect URLs)
- CREATED ledger row keyed by the session id hash
- Public origin resolution from APP_URL / proxy headers
- Cancel redirect for anonymous and signed-in users
"""

from unittest.mock import MagicMock, patch
from urllib.parse import parse_qs, urlparse

import stripe

from viao.extensions import db
from viao.models.boost import BoostCheckout
from viao.models.event import Event
from viao.services.stripe_service import hash_session_id

CREATE = "viao.services.stripe_service.stripe.checkout.Session.create"


def fake_session(session_id="cs_test_new", url="https://checkout.stripe.com/c/pay/cs_test_new"):
    return MagicMock(id=session_id, url=url)


class TestCheckoutAccess:
    """Who may start a boost checkout."""

    def test_anonymous_gets_401(self, client, seed_data):
        resp = client.post("/api/stripe/checkout", json={"eventId": seed_data["event_id"]})
        assert resp.status_code == 401

    def test_plain_user_gets_403(self, client, seed_data, login):
        login(client, seed_data["member_id"])
        resp = client.post("/api/stripe/checkout", json={"eventId": seed_data["event_id"]})
        assert resp.status_code == 403

    def test_admin_is_not_an_organizer(self, client, seed_data, login):
        login(client, seed_data["admin_id"])
        resp = client.post("/api/stripe/checkout", json={"eventId": seed_data["event_id"]})
        assert resp.status_code == 403

    def test_other_organizers_event_is_forbidden(self, client, seed_data, login):
        login(client, seed_data["other_organizer_id"])
        resp = client.post("/api/stripe/checkout", json={"eventId": seed_data["event_id"]})
        assert resp.status_code == 403


class TestCheckoutValidation:
    """Payload and event state checks."""

    def test_missing_event_id(self, client, seed_data, login):
        login(client, seed_data["organizer_id"])
        resp = client.post("/api/stripe/checkout", json={"level": 1})
        assert resp.status_code == 400

    def test_invalid_level(self, client, seed_data, login):
        login(client, seed_data["organizer_id"])
        resp = client.post(
            "/api/stripe/checkout", json={"eventId": seed_data["event_id"], "level": 3}
        )
        assert resp.status_code == 400

    def test_unknown_event(self, client, seed_data, login):
        login(client, seed_data["organizer_id"])
        resp = client.post("/api/stripe/checkout", json={"eventId": "nope"})
        assert resp.status_code == 404

    def test_cancelled_event(self, client, seed_data, login):
        event = db.session.get(Event, seed_data["event_id"])
        event.is_cancelled = True
        db.session.commit()

        login(client, seed_data["organizer_id"])
        resp = client.post("/api/stripe/checkout", json={"eventId": seed_data["event_id"]})
        assert resp.status_code == 400

    def test_boosting_disabled(self, app, client, seed_data, login):
        login(client, seed_data["organizer_id"])
        app.config["BOOSTING_ENABLED"] = False
        try:
            resp = client.post(
                "/api/stripe/checkout", json={"eventId": seed_data["event_id"]}
            )
        finally:
            app.config["BOOSTING_ENABLED"] = True
        assert resp.status_code == 403


class TestCheckoutSession:
    """Stripe Checkout Session creation."""

    @patch(CREATE)
    def test_premium_checkout(self, mock_create, client, seed_data, login):
        mock_create.return_value = fake_session()
        login(client, seed_data["organizer_id"])

        resp = client.post(
            "/api/stripe/checkout", json={"eventId": seed_data["event_id"], "level": 2}
        )
        assert resp.status_code == 200
        assert resp.get_json()["url"] == "https://checkout.stripe.com/c/pay/cs_test_new"

        kwargs = mock_create.call_args.kwargs
        assert kwargs["mode"] == "payment"
        price = kwargs["line_items"][0]["price_data"]
        assert price["unit_amount"] == 1500
        assert price["currency"] == "chf"
        assert price["product_data"]["name"] == "Premium Boost"
        assert kwargs["metadata"] == {
            "eventId": seed_data["event_id"],
            "level": "2",
            "organizerId": seed_data["organizer_id"],
        }
        assert kwargs["success_url"] == (
            "http://localhost/api/stripe/success?session_id={CHECKOUT_SESSION_ID}"
        )
        assert kwargs["cancel_url"].startswith("http://localhost/api/stripe/cancel")

    @patch(CREATE)
    def test_level_defaults_to_basic(self, mock_create, client, seed_data, login):
        mock_create.return_value = fake_session()
        login(client, seed_data["organizer_id"])

        client.post("/api/stripe/checkout", json={"eventId": seed_data["event_id"]})
        price = mock_create.call_args.kwargs["line_items"][0]["price_data"]
        assert price["unit_amount"] == 500

    @patch(CREATE)
    def test_created_ledger_row(self, mock_create, client, seed_data, login):
        mock_create.return_value = fake_session()
        login(client, seed_data["organizer_id"])

        client.post(
            "/api/stripe/checkout", json={"eventId": seed_data["event_id"], "level": 2}
        )
        checkout = BoostCheckout.query.one()
        assert checkout.status == "CREATED"
        assert checkout.processed_at is None
        assert checkout.amount == 1500
        assert checkout.level == 2
        assert checkout.stripe_session_id_hash == hash_session_id(
            "cs_test_new", "hash_secret_test"
        )

    @patch(CREATE)
    def test_no_url_means_no_ledger_row(self, mock_create, client, seed_data, login):
        mock_create.return_value = fake_session(url=None)
        login(client, seed_data["organizer_id"])

        resp = client.post("/api/stripe/checkout", json={"eventId": seed_data["event_id"]})
        assert resp.status_code == 500
        assert BoostCheckout.query.count() == 0

    @patch(CREATE)
    def test_stripe_error_returns_500(self, mock_create, client, seed_data, login):
        mock_create.side_effect = stripe.StripeError("card network down")
        login(client, seed_data["organizer_id"])

        resp = client.post("/api/stripe/checkout", json={"eventId": seed_data["event_id"]})
        assert resp.status_code == 500
        assert resp.get_json()["error"] == "Failed to create checkout session"

    @patch(CREATE)
    def test_forwarded_headers_build_public_urls(self, mock_create, client,
                                                 seed_data, login):
        mock_create.return_value = fake_session()
        login(client, seed_data["organizer_id"])

        client.post(
            "/api/stripe/checkout",
            json={"eventId": seed_data["event_id"]},
            headers={"X-Forwarded-Host": "viao.ch", "X-Forwarded-Proto": "https"},
        )
        assert mock_create.call_args.kwargs["success_url"].startswith(
            "https://viao.ch/api/stripe/success"
        )

    @patch(CREATE)
    def test_app_url_wins(self, mock_create, app, client, seed_data, login):
        mock_create.return_value = fake_session()
        login(client, seed_data["organizer_id"])

        app.config["APP_URL"] = "https://www.viao.ch/"
        try:
            client.post(
                "/api/stripe/checkout",
                json={"eventId": seed_data["event_id"]},
                headers={"X-Forwarded-Host": "internal.proxy"},
            )
        finally:
            app.config["APP_URL"] = None
        assert mock_create.call_args.kwargs["success_url"].startswith(
            "https://www.viao.ch/api/stripe/success"
        )


class TestCancel:
    """GET /api/stripe/cancel."""

    def test_anonymous(self, client, seed_data):
        resp = client.get("/api/stripe/cancel?session_id=cs_test_x")
        assert resp.status_code == 302
        parsed = urlparse(resp.headers["Location"])
        assert parsed.path == "/"
        assert parse_qs(parsed.query) == {"payment": ["cancelled"]}

    def test_signed_in(self, client, seed_data, login):
        login(client, seed_data["organizer_id"])
        resp = client.get("/api/stripe/cancel?session_id=cs_test_x")
        parsed = urlparse(resp.headers["Location"])
        assert parsed.path == "/events"
        assert parse_qs(parsed.query) == {
            "payment": ["cancelled"],
            "session_id": ["cs_test_x"],
        }
