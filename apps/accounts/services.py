"""
Services for account registration and permissions.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from typing import Dict, Mapping, Optional
from uuid import UUID

from django.db import DatabaseError
from django.db.models import QuerySet

from .errors import (
    DeadlineExceeded,
    IdentityConflict,
    InvalidSignup,
    JurisdictionAlreadyAdministered,
    PropagationTimeout,
    RegistrationError,
    StoreUnavailable,
)
from .models import Profile
from .retry import BackoffPolicy, Deadline, VisibilityTimeout, WaitCancelled, await_visible
from .serializers import SignupSerializer
from .store import EmailConflict, JurisdictionConflict, ProfileDraft, ProfileStore
from .supabase_client import Identity, supabase_auth

logger = logging.getLogger(__name__)


class RegistrationState(str, Enum):
    RECEIVED = "received"
    VALIDATED = "validated"
    REJECTED = "rejected"
    IDENTITY_CREATED = "identity_created"
    IDENTITY_VISIBLE = "identity_visible"
    JURISDICTION_OK = "jurisdiction_ok"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


TERMINAL_STATES = (RegistrationState.REJECTED, RegistrationState.SUCCEEDED, RegistrationState.FAILED)


@dataclass
class RegistrationAttempt:
    """Progress of one `register()` call. Internal; never shown to clients."""

    email: str = ""
    state: RegistrationState = RegistrationState.RECEIVED
    identity_id: Optional[UUID] = None

    def advance(self, state: RegistrationState):
        if self.state in TERMINAL_STATES:
            raise RuntimeError(f"registration already {self.state.value}")
        logger.info(
            f"Registration {self.email or '<unvalidated>'}: {self.state.value} -> {state.value}"
            + (f" (identity {self.identity_id})" if self.identity_id else "")
        )
        self.state = state

    def fail(self, error: RegistrationError):
        terminal = RegistrationState.REJECTED if isinstance(error, InvalidSignup) else RegistrationState.FAILED
        if self.state not in TERMINAL_STATES:
            logger.warning(
                f"Registration {self.email or '<unvalidated>'} {terminal.value} in state "
                f"{self.state.value}: {error.error_code}"
            )
            self.state = terminal


@dataclass(frozen=True)
class RegistrationResult:
    profile: Profile
    created: bool


class RegistrationService:
    """
    Drives a signup to a single outcome: a persisted profile or one typed
    `RegistrationError`.

    Steps: validate, create the Supabase identity (or resume a recorded one),
    wait for the identity to become visible, then reserve the jurisdiction and
    upsert the profile in one transaction. Exactly one identity creation and
    one profile write happen per successful run; the visibility wait only reads.
    """

    def __init__(self, identity_provider=None, store: ProfileStore = None, policy: BackoffPolicy = None):
        self.identity_provider = identity_provider or supabase_auth
        self.store = store or ProfileStore()
        self.policy = policy or BackoffPolicy.from_settings()

    def register(self, payload: Mapping, deadline: Optional[Deadline] = None) -> RegistrationResult:
        """
        Register a user from a raw signup payload.

        Args:
            payload: email, password, first_name, last_name, role_name,
                optional jurisdiction_code and mobile_number
            deadline: caller-imposed limit; it bounds each Supabase request and
                cancelling it aborts the visibility wait

        Returns:
            RegistrationResult; `created` is False for an idempotent replay

        Raises:
            RegistrationError: one of its subclasses, never a raw infrastructure error
        """
        deadline = deadline or Deadline()
        attempt = RegistrationAttempt()
        try:
            return self._run(payload, deadline, attempt)
        except RegistrationError as exc:
            attempt.fail(exc)
            raise
        except DatabaseError as exc:
            logger.error(f"Profile store error during registration of {attempt.email}: {exc}")
            error = StoreUnavailable()
            attempt.fail(error)
            raise error from exc

    def _run(self, payload: Mapping, deadline: Deadline, attempt: RegistrationAttempt) -> RegistrationResult:
        data = self._validate(payload)
        attempt.email = data["email"]
        attempt.advance(RegistrationState.VALIDATED)

        existing = self.store.find_profile_by_email(data["email"])
        if existing is not None:
            result = self._replay(existing, data)
            attempt.identity_id = existing.id
            attempt.advance(RegistrationState.SUCCEEDED)
            return result

        self._check_deadline(deadline)
        attempt.identity_id = self._create_or_resume_identity(data, deadline)
        attempt.advance(RegistrationState.IDENTITY_CREATED)

        self._await_identity(attempt.identity_id, deadline)
        attempt.advance(RegistrationState.IDENTITY_VISIBLE)

        # Last cancellation point: the reservation and the profile write below
        # commit together or not at all.
        self._check_deadline(deadline)
        profile = self._reserve_and_persist(attempt.identity_id, data)
        attempt.advance(RegistrationState.JURISDICTION_OK)
        attempt.advance(RegistrationState.SUCCEEDED)
        return RegistrationResult(profile=profile, created=True)

    # ------------------------------------------------------------------ #
    # Steps                                                                 #
    # ------------------------------------------------------------------ #

    @staticmethod
    def _validate(payload: Mapping) -> Dict:
        serializer = SignupSerializer(data=payload)
        if not serializer.is_valid():
            raise InvalidSignup(serializer.errors)
        return serializer.validated_data

    def _replay(self, existing: Profile, data: Dict) -> RegistrationResult:
        """A signup for an email that already has a profile."""
        registration = self.store.find_registration(data["email"])
        same_request = (
            registration is not None
            and registration.identity_id == existing.id
            and self.store.password_matches(registration, data["password"])
            and existing.role_id == data["role"].id
            and existing.jurisdiction_id == (data["jurisdiction"].code if data["jurisdiction"] else None)
        )
        if not same_request:
            raise InvalidSignup({"email": ["Email already registered"]})
        logger.info(f"Signup replay for {existing.email}; returning existing profile {existing.id}")
        return RegistrationResult(profile=existing, created=False)

    def _create_or_resume_identity(self, data: Dict, deadline: Deadline) -> UUID:
        email, password = data["email"], data["password"]

        registration = self.store.find_registration(email)
        if registration is not None:
            if not self.store.password_matches(registration, password):
                raise IdentityConflict()
            logger.info(f"Resuming registration for {email} with identity {registration.identity_id}")
            return registration.identity_id

        try:
            identity = self.identity_provider.create_identity(
                email=email,
                password=password,
                user_metadata=self._user_metadata(data),
                timeout=deadline.remaining(),
            )
        except StoreUnavailable as exc:
            if deadline.expired:
                raise DeadlineExceeded() from exc
            raise

        try:
            self.store.record_registration(email, identity.id, password)
        except DatabaseError:
            logger.error(
                f"Identity {identity.id} was created for {email} but could not be recorded; "
                f"it must be reconciled in Supabase by hand"
            )
            raise
        return identity.id

    def _await_identity(self, identity_id: UUID, deadline: Deadline) -> Identity:
        try:
            return await_visible(
                lambda: self.identity_provider.get_identity_by_id(identity_id, timeout=deadline.remaining()),
                self.policy,
                deadline=deadline,
                retry_on=(StoreUnavailable,),
            )
        except VisibilityTimeout as exc:
            logger.warning(
                f"Identity {identity_id} not visible after {exc.attempts} attempts ({exc.elapsed:.2f}s)"
            )
            raise PropagationTimeout(exc.attempts, exc.elapsed) from exc
        except WaitCancelled as exc:
            raise DeadlineExceeded(exc.attempts, exc.elapsed) from exc

    def _reserve_and_persist(self, identity_id: UUID, data: Dict) -> Profile:
        draft = ProfileDraft(
            id=identity_id,
            email=data["email"],
            first_name=data["first_name"],
            last_name=data["last_name"],
            mobile_number=data["mobile_number"],
            role=data["role"],
            jurisdiction=data["jurisdiction"],
        )
        try:
            return self.store.reserve_and_upsert_profile(draft)
        except JurisdictionConflict as exc:
            raise JurisdictionAlreadyAdministered(exc.jurisdiction_code) from exc
        except EmailConflict as exc:
            raise IdentityConflict() from exc

    @staticmethod
    def _check_deadline(deadline: Deadline):
        if deadline.expired:
            raise DeadlineExceeded()

    @staticmethod
    def _user_metadata(data: Dict) -> Dict:
        metadata = {
            "first_name": data["first_name"],
            "last_name": data["last_name"],
            "role_name": data["role"].name,
        }
        if data["mobile_number"]:
            metadata["phone"] = data["mobile_number"]
        if data["jurisdiction"]:
            metadata["barangay_code"] = data["jurisdiction"].code
        return metadata


@lru_cache(maxsize=1)
def get_registration_service() -> RegistrationService:
    return RegistrationService()


class UserPermissionService:
    """Service for checking profile permissions."""

    ADMIN_ROLES = ("super_admin", "admin")

    @staticmethod
    def is_super_admin(profile: Profile) -> bool:
        return profile.has_role("super_admin")

    @staticmethod
    def can_list_users(profile: Profile) -> bool:
        return profile.status == Profile.STATUS_ACTIVE and profile.has_role(*UserPermissionService.ADMIN_ROLES)

    @staticmethod
    def visible_profiles(profile: Profile) -> QuerySet:
        """
        Profiles an admin may see.
        Super admins see everyone; barangay admins see their own barangay.
        """
        profiles = Profile.objects.select_related("role", "jurisdiction")
        if UserPermissionService.is_super_admin(profile):
            return profiles
        return profiles.filter(jurisdiction_id=profile.jurisdiction_id)
