"""Shared fixtures for the accounts and jurisdictions tests."""

from __future__ import annotations

import threading
from collections import defaultdict
from uuid import UUID, uuid4

import pytest
from django.utils import timezone

from apps.accounts.errors import IdentityConflict, StoreUnavailable
from apps.accounts.models import Role
from apps.accounts.retry import BackoffPolicy
from apps.accounts.services import RegistrationService
from apps.accounts.store import ProfileStore
from apps.accounts.supabase_client import Identity
from apps.jurisdictions.models import Jurisdiction

ROLE_DEFINITIONS = {
    "super_admin": {"is_jurisdiction_admin": False, "allows_self_signup": False, "permissions": {"all": True}},
    "admin": {"is_jurisdiction_admin": True, "allows_self_signup": True, "permissions": {"residents": "crud"}},
    "clerk": {"is_jurisdiction_admin": False, "allows_self_signup": True, "permissions": {"residents": "crud"}},
    "resident": {"is_jurisdiction_admin": False, "allows_self_signup": True, "permissions": {"residents": "read_own"}},
}

BARANGAY_CODE = "042108001"
OTHER_BARANGAY_CODE = "042108002"
PASSWORD = "Secret123"


class FakeIdentityProvider:
    """
    Thread-safe in-memory stand-in for Supabase Auth.

    `visible_after` hides each identity from the first N lookups.
    `failing_lookups` makes the first N lookups raise StoreUnavailable.
    """

    def __init__(self, visible_after: int = 0, never_visible: bool = False, failing_lookups: int = 0):
        self.visible_after = visible_after
        self.never_visible = never_visible
        self.failing_lookups = failing_lookups
        self.create_calls = 0
        self.timeouts: list[float | None] = []
        self.lookups: dict[UUID, int] = defaultdict(int)
        self._by_email: dict[str, Identity] = {}
        self._by_id: dict[UUID, Identity] = {}
        self._lock = threading.Lock()

    def create_identity(
        self, email: str, password: str, user_metadata: dict | None = None, timeout: float | None = None
    ) -> Identity:
        with self._lock:
            self.timeouts.append(timeout)
            self.create_calls += 1
            if email in self._by_email:
                raise IdentityConflict()
            identity = Identity(id=uuid4(), email=email, created_at=timezone.now())
            self._by_email[email] = identity
            self._by_id[identity.id] = identity
            return identity

    def get_identity_by_id(self, identity_id, timeout: float | None = None) -> Identity | None:
        with self._lock:
            self.timeouts.append(timeout)
            self.lookups[identity_id] += 1
            if self.failing_lookups > 0:
                self.failing_lookups -= 1
                raise StoreUnavailable()
            identity = self._by_id.get(identity_id)
            if identity is None or self.never_visible:
                return None
            if self.lookups[identity_id] <= self.visible_after:
                return None
            return identity

    def total_lookups(self) -> int:
        return sum(self.lookups.values())


@pytest.fixture()
def roles(db) -> dict[str, Role]:
    """The four seeded roles, recreated if a transactional test flushed them."""
    return {
        name: Role.objects.update_or_create(name=name, defaults=fields)[0]
        for name, fields in ROLE_DEFINITIONS.items()
    }


@pytest.fixture()
def barangay(db) -> Jurisdiction:
    return Jurisdiction.objects.update_or_create(
        code=BARANGAY_CODE, defaults={"name": "Poblacion", "is_active": True}
    )[0]


@pytest.fixture()
def other_barangay(db) -> Jurisdiction:
    return Jurisdiction.objects.update_or_create(
        code=OTHER_BARANGAY_CODE, defaults={"name": "San Isidro", "is_active": True}
    )[0]


@pytest.fixture()
def fast_policy() -> BackoffPolicy:
    return BackoffPolicy(max_attempts=5, initial_delay=0.001, backoff_multiplier=2.0, max_delay=0.01, jitter=0.0)


@pytest.fixture()
def identity_provider() -> FakeIdentityProvider:
    return FakeIdentityProvider()


@pytest.fixture()
def service(identity_provider, fast_policy) -> RegistrationService:
    return RegistrationService(identity_provider=identity_provider, store=ProfileStore(), policy=fast_policy)


@pytest.fixture()
def signup_payload(roles, barangay):
    """Factory for a valid signup payload; keyword arguments override fields."""

    def make(**overrides) -> dict:
        payload = {
            "email": "juan@example.com",
            "password": PASSWORD,
            "first_name": "Juan",
            "last_name": "Dela Cruz",
            "mobile_number": "09171234567",
            "role_name": "admin",
            "jurisdiction_code": BARANGAY_CODE,
        }
        payload.update(overrides)
        return {key: value for key, value in payload.items() if value is not ...}

    return make
