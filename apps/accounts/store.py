"""
Profile Store: the database of record for profiles.

The jurisdiction-admin rule is enforced by the `uniq_active_jurisdiction_admin`
partial unique index. `reserve_and_upsert_profile` is the only code path that
writes a profile's jurisdiction together with an admin role; it treats the
index violation as the conflict signal instead of reading first.
"""

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional
from uuid import UUID

from django.contrib.auth.hashers import check_password, make_password
from django.db import IntegrityError, transaction
from django.db.models import QuerySet
from django.utils import timezone

from apps.jurisdictions.models import Jurisdiction
from .models import Profile, Registration, Role

logger = logging.getLogger(__name__)


class JurisdictionConflict(Exception):
    """Another active admin profile already holds the jurisdiction."""

    def __init__(self, jurisdiction_code: str):
        self.jurisdiction_code = jurisdiction_code
        super().__init__(f"jurisdiction {jurisdiction_code} already has an active admin")


class EmailConflict(Exception):
    """A profile with a different id already uses the email."""


@dataclass(frozen=True)
class ProfileDraft:
    """Everything needed to write a profile, keyed by the identity id."""

    id: UUID
    email: str
    first_name: str
    last_name: str
    role: Role
    jurisdiction: Optional[Jurisdiction] = None
    mobile_number: str = ""

    @property
    def jurisdiction_code(self) -> Optional[str]:
        return self.jurisdiction.code if self.jurisdiction else None


class ProfileStore:
    """Django ORM implementation of the profile store."""

    def find_profile_by_email(self, email: str) -> Optional[Profile]:
        return (
            Profile.objects.select_related("role", "jurisdiction")
            .filter(email__iexact=email)
            .first()
        )

    def get_jurisdiction_admin_status(self, jurisdiction_code: str) -> bool:
        """
        Advisory only: whether an active admin currently holds the jurisdiction.
        May be stale by the time a signup reaches the reservation.
        """
        return self._active_admins(jurisdiction_code).exists()

    def reserve_and_upsert_profile(self, draft: ProfileDraft) -> Profile:
        """
        Write the profile for `draft.id` and reserve its jurisdiction in one
        transaction.

        A row that already exists for the id is completed in place, so a
        retried call never conflicts with its own earlier reservation. The
        matching registration is marked completed in the same transaction.

        Raises:
            JurisdictionConflict: another active admin holds the jurisdiction.
            EmailConflict: the email belongs to a different profile.
        """
        values = {
            "email": draft.email,
            "first_name": draft.first_name,
            "last_name": draft.last_name,
            "mobile_number": draft.mobile_number,
            "role": draft.role,
            "jurisdiction": draft.jurisdiction,
            "is_jurisdiction_admin": draft.role.is_jurisdiction_admin,
        }
        try:
            with transaction.atomic():
                profile = self._lock_profile(draft.id)
                if profile is None:
                    profile = Profile.objects.create(id=draft.id, **values)
                    logger.info(f"Profile {draft.id} created for {draft.email}")
                else:
                    self._complete(profile, values)
                    logger.info(f"Profile {draft.id} already existed; completed in place")
                self._mark_registration_completed(draft.id)
            return profile
        except IntegrityError:
            if not Profile.objects.filter(id=draft.id).exists():
                self._raise_conflict(draft)
                raise

        # A concurrent call for the same identity inserted the row first.
        try:
            with transaction.atomic():
                profile = Profile.objects.select_for_update().get(id=draft.id)
                self._complete(profile, values)
                logger.info(f"Profile {draft.id} inserted concurrently; completed in place")
                self._mark_registration_completed(draft.id)
            return profile
        except IntegrityError:
            self._raise_conflict(draft)
            raise

    @staticmethod
    def _lock_profile(profile_id: UUID) -> Optional[Profile]:
        return Profile.objects.select_for_update().filter(id=profile_id).first()

    @staticmethod
    def _mark_registration_completed(identity_id: UUID):
        Registration.objects.filter(
            identity_id=identity_id, completed_at__isnull=True
        ).update(completed_at=timezone.now())

    @staticmethod
    def _complete(profile: Profile, values: dict):
        for field, value in values.items():
            setattr(profile, field, value)
        profile.save()

    def _raise_conflict(self, draft: ProfileDraft):
        """Classify an integrity error raised while writing `draft`; returns if it is neither conflict."""
        if draft.role.is_jurisdiction_admin and draft.jurisdiction is not None:
            if self._active_admins(draft.jurisdiction_code).exclude(id=draft.id).exists():
                raise JurisdictionConflict(draft.jurisdiction_code)
        if Profile.objects.filter(email__iexact=draft.email).exclude(id=draft.id).exists():
            raise EmailConflict(draft.email)

    # ------------------------------------------------------------------ #
    # Registration ledger                                                   #
    # ------------------------------------------------------------------ #

    def find_registration(self, email: str) -> Optional[Registration]:
        return Registration.objects.filter(email__iexact=email).first()

    def record_registration(self, email: str, identity_id: UUID, password: str) -> Registration:
        registration, created = Registration.objects.get_or_create(
            email=email,
            defaults={"identity_id": identity_id, "password_hash": make_password(password)},
        )
        if not created and registration.identity_id != identity_id:
            logger.warning(
                f"Registration for {email} already points at identity {registration.identity_id}, "
                f"not {identity_id}"
            )
        return registration

    @staticmethod
    def password_matches(registration: Registration, password: str) -> bool:
        return check_password(password, registration.password_hash)

    def stale_registrations(self, older_than_hours: int) -> QuerySet:
        """Uncompleted registrations older than the threshold, oldest first."""
        cutoff = timezone.now() - timedelta(hours=older_than_hours)
        return Registration.objects.filter(
            completed_at__isnull=True, created_at__lt=cutoff
        ).order_by("created_at")

    @staticmethod
    def _active_admins(jurisdiction_code: str) -> QuerySet:
        return Profile.objects.filter(
            jurisdiction_id=jurisdiction_code,
            is_jurisdiction_admin=True,
        ).exclude(status=Profile.STATUS_REJECTED)
