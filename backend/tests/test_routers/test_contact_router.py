"""Tests for the contact form endpoint."""

from repositories.db_models import Submission, SubmissionKind


class TestContactRouter:
    """Tests for POST /api/contact."""

    def test_submit_success(self, client, db_session, contact_form) -> None:
        """A valid form is stored and answered with 201."""
        response = client.post("/api/contact", json=contact_form)

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["submissionId"].startswith("CON-")
        assert body["remainingAttempts"] == 4
        assert "outcome" not in body
        assert response.headers["X-RateLimit-Limit"] == "5"
        assert response.headers["X-RateLimit-Remaining"] == "4"

        stored = db_session.query(Submission).one()
        assert stored.kind == SubmissionKind.CONTACT
        assert stored.email == "jane.doe@example.com"

    def test_validation_errors(self, client, db_session, contact_form) -> None:
        """Field errors come back keyed by form field."""
        contact_form["email"] = "not-an-email"
        del contact_form["message"]

        response = client.post("/api/contact", json=contact_form)

        assert response.status_code == 422
        body = response.json()
        assert body["success"] is False
        assert "email" in body["errors"]
        assert "message" in body["errors"]
        assert db_session.query(Submission).count() == 0

    def test_non_object_body(self, client) -> None:
        """A JSON array is rejected as a whole."""
        response = client.post("/api/contact", json=["not", "a", "form"])

        assert response.status_code == 422
        assert response.json()["errors"] == {"form": ["Invalid submission"]}

    def test_rate_limited_after_five(self, client, contact_form) -> None:
        """The sixth submission within the hour is blocked."""
        for _ in range(5):
            assert client.post("/api/contact", json=contact_form).status_code == 201

        response = client.post("/api/contact", json=contact_form)

        assert response.status_code == 429
        assert response.json()["remainingAttempts"] == 0
        assert response.headers["X-RateLimit-Remaining"] == "0"
        assert int(response.headers["Retry-After"]) > 0
        assert "X-RateLimit-Reset" in response.headers

    def test_rate_limit_is_per_client(self, client, contact_form) -> None:
        """Another client IP keeps its own allowance."""
        for _ in range(6):
            client.post("/api/contact", json=contact_form)

        response = client.post(
            "/api/contact", json=contact_form, headers={"X-Real-IP": "203.0.113.7"}
        )

        assert response.status_code == 201

    def test_idempotent_resubmission(self, client, db_session, contact_form) -> None:
        """Replaying the same idempotency key returns the original submission."""
        contact_form["idempotencyKey"] = "contact-retry-0001"

        first = client.post("/api/contact", json=contact_form)
        second = client.post("/api/contact", json=contact_form)

        assert first.status_code == second.status_code == 201
        assert first.json()["submissionId"] == second.json()["submissionId"]
        assert db_session.query(Submission).count() == 1

    def test_correlation_id_round_trip(self, client, contact_form) -> None:
        """A well formed incoming correlation ID is echoed back."""
        correlation_id = "3f1c2a9e-8b7d-4c6e-9a1b-2d3e4f5a6b7c"

        response = client.post(
            "/api/contact",
            json=contact_form,
            headers={"X-Correlation-ID": correlation_id},
        )

        assert response.headers["X-Correlation-ID"] == correlation_id
