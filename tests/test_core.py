"""
Tests for authentication, tenant settings, branches and the audit trail.
"""

import logging

from django.urls import reverse

import pytest
from django_fsm import ConcurrentTransition, TransitionNotAllowed

from apps.core.audit_models import AuditLog
from apps.core.exceptions import api_exception_handler
from apps.core.models import Branch


@pytest.mark.django_db
class TestAuthentication:
    """JWT login and the current user profile."""

    def test_token_contains_business_claims(self, api_client, cafe):
        """Test that login returns the tenant, branch and business type of the user."""
        response = api_client.post(
            reverse("token_obtain_pair"),
            {"username": cafe.employee.username, "password": "testpass123"},
            format="json",
        )

        assert response.status_code == 200
        data = response.json()
        assert "access" in data
        assert "refresh" in data
        assert data["user"]["business_type"] == "cafe"
        assert data["user"]["branch_id"] == str(cafe.branch.id)

    def test_wrong_password_rejected(self, api_client, cafe):
        """Test that a wrong password does not yield a token."""
        response = api_client.post(
            reverse("token_obtain_pair"),
            {"username": cafe.employee.username, "password": "wrong"},
            format="json",
        )
        assert response.status_code == 401

    def test_bearer_token_authenticates(self, api_client, retail):
        """Test that the access token works as a bearer token."""
        response = api_client.post(
            reverse("token_obtain_pair"),
            {"username": retail.owner.username, "password": "testpass123"},
            format="json",
        )
        api_client.credentials(HTTP_AUTHORIZATION=f"Bearer {response.json()['access']}")

        response = api_client.get(reverse("core:user_profile"))

        assert response.status_code == 200
        assert response.json()["username"] == retail.owner.username

    def test_profile_role_is_read_only(self, api_client, retail):
        """Test that a cashier cannot promote themself through the profile."""
        api_client.force_authenticate(retail.employee)

        response = api_client.patch(
            reverse("core:user_profile"),
            {"role": "TENANT_OWNER", "first_name": "Omar"},
            format="json",
        )

        assert response.status_code == 200
        retail.employee.refresh_from_db()
        assert retail.employee.first_name == "Omar"
        assert retail.employee.role != "TENANT_OWNER"


@pytest.mark.django_db
class TestBranches:
    """Branch management is owner-only and deactivates instead of deleting."""

    def test_list_branches(self, api_client, retail):
        api_client.force_authenticate(retail.employee)
        response = api_client.get(reverse("core:branch_list"))

        assert response.status_code == 200
        assert {branch["name"] for branch in response.json()} == {"Main Branch", "Warehouse"}

    def test_owner_creates_branch(self, api_client, retail):
        api_client.force_authenticate(retail.owner)

        response = api_client.post(
            reverse("core:branch_list"), {"name": "Mall Kiosk", "phone": "0100"}, format="json"
        )

        assert response.status_code == 201
        branch = Branch.objects.get(tenant=retail.tenant, name="Mall Kiosk")
        assert AuditLog.objects.filter(
            tenant=retail.tenant, object_id=str(branch.id), action="CREATE"
        ).exists()

    def test_manager_cannot_create_branch(self, api_client, retail):
        api_client.force_authenticate(retail.manager)
        response = api_client.post(reverse("core:branch_list"), {"name": "Mall Kiosk"}, format="json")
        assert response.status_code == 403

    def test_branch_names_unique_per_tenant(self, api_client, make_business):
        first = make_business("retail", name="First Shop")
        make_business("retail", name="Second Shop")
        api_client.force_authenticate(first.owner)

        response = api_client.post(reverse("core:branch_list"), {"name": "Main Branch"}, format="json")
        assert response.status_code == 400
        assert "name" in response.json()

    def test_delete_deactivates(self, api_client, retail):
        api_client.force_authenticate(retail.owner)
        url = reverse("core:branch_detail", args=[retail.other_branch.id])

        assert api_client.delete(url).status_code == 204
        retail.other_branch.refresh_from_db()
        assert retail.other_branch.is_active is False

        response = api_client.delete(url)
        assert response.status_code == 409
        assert response.json()["code"] == "conflict"

    def test_branch_of_other_tenant_not_found(self, api_client, make_business):
        first = make_business("retail", name="First Shop")
        second = make_business("retail", name="Second Shop")
        api_client.force_authenticate(first.owner)

        response = api_client.get(reverse("core:branch_detail", args=[second.branch.id]))
        assert response.status_code == 404


class TestExceptionHandler:
    """State machine errors are translated into API errors."""

    def test_transition_not_allowed_is_bad_request(self):
        response = api_exception_handler(TransitionNotAllowed("nope"), {})
        assert response.status_code == 400
        assert response.data["code"] == "invalid_status_transition"

    def test_concurrent_transition_is_conflict(self):
        response = api_exception_handler(ConcurrentTransition("stale"), {})
        assert response.status_code == 409
        assert response.data["code"] == "concurrent_update"

    def test_unexpected_errors_are_logged_and_not_handled(self, caplog):
        with caplog.at_level(logging.ERROR, logger="apps.core.exceptions"):
            assert api_exception_handler(RuntimeError("boom"), {}) is None

        record = caplog.records[-1]
        assert record.levelno == logging.ERROR
        assert record.exc_info[1].args == ("boom",)
