"""Security tests.

Tests:
- Security headers are present on responses
- Role guards on organizer and admin endpoints
- Unauthenticated API calls get JSON 401s, not redirects
- Rate limiting configuration
"""


class TestSecurityHeaders:
    """Verify security headers are present on responses."""

    def test_x_content_type_options(self, app, client):
        """X-Content-Type-Options: nosniff should be set."""
        response = client.get("/api/events")
        assert response.headers.get("X-Content-Type-Options") == "nosniff"

    def test_x_frame_options(self, app, client):
        """X-Frame-Options: DENY should be set."""
        response = client.get("/api/events")
        assert response.headers.get("X-Frame-Options") == "DENY"

    def test_referrer_policy(self, app, client):
        """Referrer-Policy should be set."""
        response = client.get("/api/events")
        assert response.headers.get("Referrer-Policy") == "strict-origin-when-cross-origin"

    def test_permissions_policy(self, app, client):
        """Permissions-Policy should restrict browser features."""
        response = client.get("/api/events")
        pp = response.headers.get("Permissions-Policy")
        assert pp is not None
        assert "camera=()" in pp
        assert "microphone=()" in pp

    def test_no_hsts_in_debug(self, app, client):
        """HSTS should NOT be set in debug/test mode."""
        response = client.get("/api/events")
        assert response.headers.get("Strict-Transport-Security") is None

    def test_headers_on_error_pages(self, app, client):
        """Security headers should be present even on 404 pages."""
        response = client.get("/nonexistent-page")
        assert response.status_code == 404
        assert response.get_json() == {"error": "Not found"}
        assert response.headers.get("X-Content-Type-Options") == "nosniff"
        assert response.headers.get("X-Frame-Options") == "DENY"


class TestRoleGuards:
    """Organizer/admin endpoints refuse other roles with JSON errors."""

    def test_unauthenticated_gets_json_401(self, client, seed_data):
        for path in ("/api/receipts", "/api/admin/billing", "/api/notifications"):
            response = client.get(path)
            assert response.status_code == 401
            assert response.get_json() == {"error": "Unauthorized"}

    def test_member_cannot_see_receipts(self, client, seed_data, login):
        login(client, seed_data["member_id"])
        response = client.get("/api/receipts")
        assert response.status_code == 403
        assert response.get_json() == {"error": "Only organizers can do this"}

    def test_organizer_cannot_see_admin_billing(self, client, seed_data, login):
        login(client, seed_data["organizer_id"])
        response = client.get("/api/admin/billing")
        assert response.status_code == 403
        assert response.get_json() == {"error": "Forbidden"}

    def test_unknown_user_id_in_session(self, client, seed_data, login):
        """A session pointing at a deleted account is treated as anonymous."""
        login(client, "no-such-user")
        response = client.get("/api/receipts")
        assert response.status_code == 401


class TestRateLimiting:
    """Verify rate limiting is configured (though disabled in tests via RATELIMIT_ENABLED=False)."""

    def test_rate_limiter_initialized(self, app):
        """Rate limiting should be disabled in testing config."""
        assert app.config.get("RATELIMIT_ENABLED") is False
