"""HTTP tests for signup, profile, admin listing and jurisdiction endpoints."""

from __future__ import annotations

import time
from unittest.mock import patch
from uuid import uuid4

import jwt
import pytest
from rest_framework.test import APIClient

from apps.accounts.errors import StoreUnavailable
from apps.accounts.models import Profile
from apps.accounts.retry import BackoffPolicy
from apps.accounts.services import RegistrationService
from apps.accounts.store import ProfileStore

from .conftest import BARANGAY_CODE, OTHER_BARANGAY_CODE, FakeIdentityProvider

JWT_SECRET = "test-jwt-secret-with-enough-length-for-hs256"
SIGNUP_URL = "/api/auth/signup/"
PROFILE_URL = "/api/auth/profile/"
ADMIN_USERS_URL = "/api/admin/users/"


def bearer(profile_id) -> dict:
    token = jwt.encode(
        {"sub": str(profile_id), "aud": "authenticated", "exp": int(time.time()) + 3600},
        JWT_SECRET,
        algorithm="HS256",
    )
    return {"HTTP_AUTHORIZATION": f"Bearer {token}"}


@pytest.fixture()
def api_client() -> APIClient:
    return APIClient()


@pytest.fixture()
def use_service(service):
    with patch("apps.accounts.views.get_registration_service", return_value=service):
        yield service


@pytest.fixture()
def make_profile(roles, barangay, other_barangay):
    counter = iter(range(1000))

    def make(role="resident", jurisdiction=BARANGAY_CODE, status=Profile.STATUS_ACTIVE) -> Profile:
        n = next(counter)
        return Profile.objects.create(
            id=uuid4(),
            email=f"user{n}@example.com",
            first_name="User",
            last_name=str(n),
            role=roles[role],
            jurisdiction_id=jurisdiction,
            is_jurisdiction_admin=roles[role].is_jurisdiction_admin,
            status=status,
        )

    return make


@pytest.mark.django_db
class TestSignupView:

    def test_created(self, api_client, use_service, signup_payload) -> None:
        response = api_client.post(SIGNUP_URL, signup_payload(), format="json")

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["data"]["email"] == "juan@example.com"
        assert body["data"]["role_name"] == "admin"
        assert body["data"]["jurisdiction_code"] == BARANGAY_CODE
        assert body["data"]["status"] == "pending_approval"
        assert "password" not in body["data"]

    def test_replay_returns_200(self, api_client, use_service, signup_payload) -> None:
        first = api_client.post(SIGNUP_URL, signup_payload(), format="json")
        second = api_client.post(SIGNUP_URL, signup_payload(), format="json")

        assert second.status_code == 200
        assert second.json()["data"]["id"] == first.json()["data"]["id"]

    def test_validation_error(self, api_client, use_service, signup_payload) -> None:
        response = api_client.post(SIGNUP_URL, signup_payload(password="weak"), format="json")

        assert response.status_code == 422
        body = response.json()
        assert body["error_code"] == "VALIDATION_ERROR"
        assert "password" in body["details"]

    def test_jurisdiction_conflict(self, api_client, use_service, signup_payload) -> None:
        api_client.post(SIGNUP_URL, signup_payload(), format="json")
        response = api_client.post(SIGNUP_URL, signup_payload(email="pedro@example.com"), format="json")

        assert response.status_code == 409
        assert response.json()["error_code"] == "JURISDICTION_ALREADY_ADMINISTERED"
        assert response.json()["retryable"] is False

    def test_propagation_timeout(self, api_client, signup_payload) -> None:
        service = RegistrationService(
            FakeIdentityProvider(never_visible=True),
            ProfileStore(),
            BackoffPolicy(max_attempts=2, initial_delay=0.001, max_delay=0.001, jitter=0.0),
        )
        with patch("apps.accounts.views.get_registration_service", return_value=service):
            response = api_client.post(SIGNUP_URL, signup_payload(), format="json")

        assert response.status_code == 504
        body = response.json()
        assert body["error_code"] == "PROPAGATION_TIMEOUT"
        assert body["retryable"] is True
        assert "details" not in body

    def test_store_unavailable(self, api_client, use_service, signup_payload) -> None:
        with patch.object(use_service, "register", side_effect=StoreUnavailable()):
            response = api_client.post(SIGNUP_URL, signup_payload(), format="json")

        assert response.status_code == 503
        assert response.json()["error_code"] == "STORE_UNAVAILABLE"

    def test_ignores_bad_bearer_token(self, api_client, use_service, signup_payload) -> None:
        response = api_client.post(
            SIGNUP_URL, signup_payload(), format="json", HTTP_AUTHORIZATION="Bearer garbage"
        )
        assert response.status_code == 201


@pytest.mark.django_db
class TestProfileView:

    def test_own_profile(self, api_client, make_profile) -> None:
        profile = make_profile()

        response = api_client.get(PROFILE_URL, **bearer(profile.id))

        assert response.status_code == 200
        assert response.json()["data"]["id"] == str(profile.id)

    def test_requires_token(self, api_client) -> None:
        assert api_client.get(PROFILE_URL).status_code == 401

    def test_token_without_profile_rejected(self, api_client, roles) -> None:
        response = api_client.get(PROFILE_URL, **bearer(uuid4()))

        assert response.status_code == 401
        assert Profile.objects.count() == 0

    def test_rejected_profile(self, api_client, make_profile) -> None:
        profile = make_profile(status=Profile.STATUS_REJECTED)
        assert api_client.get(PROFILE_URL, **bearer(profile.id)).status_code == 401


@pytest.mark.django_db
class TestAdminUserList:

    def test_super_admin_sees_everyone(self, api_client, make_profile) -> None:
        admin = make_profile(role="super_admin", jurisdiction=None)
        make_profile(jurisdiction=BARANGAY_CODE)
        make_profile(jurisdiction=OTHER_BARANGAY_CODE)

        response = api_client.get(ADMIN_USERS_URL, **bearer(admin.id))

        assert response.status_code == 200
        assert response.json()["count"] == 3

    def test_barangay_admin_sees_own_barangay(self, api_client, make_profile) -> None:
        admin = make_profile(role="admin", jurisdiction=BARANGAY_CODE)
        resident = make_profile(jurisdiction=BARANGAY_CODE)
        make_profile(jurisdiction=OTHER_BARANGAY_CODE)

        response = api_client.get(ADMIN_USERS_URL, **bearer(admin.id))

        ids = {user["id"] for user in response.json()["users"]}
        assert ids == {str(admin.id), str(resident.id)}
        assert response.json()["users"][0]["jurisdiction_name"] == "Poblacion"

    def test_pending_admin_forbidden(self, api_client, make_profile) -> None:
        admin = make_profile(role="admin", status=Profile.STATUS_PENDING_APPROVAL)
        assert api_client.get(ADMIN_USERS_URL, **bearer(admin.id)).status_code == 403

    def test_resident_forbidden(self, api_client, make_profile) -> None:
        resident = make_profile()
        assert api_client.get(ADMIN_USERS_URL, **bearer(resident.id)).status_code == 403

    def test_pagination(self, api_client, make_profile) -> None:
        admin = make_profile(role="super_admin", jurisdiction=None)
        for _ in range(4):
            make_profile()

        response = api_client.get(ADMIN_USERS_URL, {"page": 2, "page_size": 2}, **bearer(admin.id))

        body = response.json()
        assert body["count"] == 5
        assert body["total_pages"] == 3
        assert len(body["users"]) == 2

    def test_page_past_end_is_empty(self, api_client, make_profile) -> None:
        admin = make_profile(role="super_admin", jurisdiction=None)
        response = api_client.get(ADMIN_USERS_URL, {"page": 9}, **bearer(admin.id))

        assert response.status_code == 200
        assert response.json()["users"] == []

    @pytest.mark.parametrize("params", [{"page_size": 101}, {"page_size": 0}, {"page": 0}, {"page": "x"}])
    def test_bad_paging(self, api_client, make_profile, params) -> None:
        admin = make_profile(role="super_admin", jurisdiction=None)
        assert api_client.get(ADMIN_USERS_URL, params, **bearer(admin.id)).status_code == 400


@pytest.mark.django_db
class TestJurisdictionAdminStatus:

    def test_free(self, api_client, barangay) -> None:
        response = api_client.get(f"/api/jurisdictions/{BARANGAY_CODE}/admin-status/")

        assert response.status_code == 200
        assert response.json()["data"]["has_admin"] is False

    def test_taken(self, api_client, make_profile) -> None:
        make_profile(role="admin", status=Profile.STATUS_PENDING_APPROVAL)
        response = api_client.get(f"/api/jurisdictions/{BARANGAY_CODE}/admin-status/")

        assert response.json()["data"]["has_admin"] is True

    def test_unknown_code(self, api_client, db) -> None:
        assert api_client.get("/api/jurisdictions/000000000/admin-status/").status_code == 404


def test_health(client) -> None:
    assert client.get("/health/").status_code == 200
