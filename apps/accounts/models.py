"""
Account models for the RBI system.

Role: named permission bundle (reference data, seeded by migration).
Profile: the application user record, keyed by the Supabase identity id.
Registration: ledger of identities created by the signup flow.
"""

from django.db import models
from django.db.models import Q


class Role(models.Model):
    """
    A named permission bundle such as 'admin' or 'clerk'.
    Immutable reference data; the signup flow only looks roles up by name.
    """

    name = models.CharField(max_length=50, unique=True)
    permissions = models.JSONField(
        default=dict,
        blank=True,
        help_text="Mapping of resource to allowed actions",
    )
    is_jurisdiction_admin = models.BooleanField(
        default=False,
        help_text="At most one active profile with this role per jurisdiction",
    )
    allows_self_signup = models.BooleanField(
        default=True,
        help_text="Whether the public signup form may request this role",
    )

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "roles"
        ordering = ["name"]

    def __str__(self):
        return self.name


class Profile(models.Model):
    """
    The persisted user/resident record created by the signup flow.

    `id` is the Supabase identity id. `is_jurisdiction_admin` is copied from
    the role when the profile is written so the uniqueness rule can be a
    partial index on this table alone.
    """

    STATUS_PENDING_APPROVAL = "pending_approval"
    STATUS_ACTIVE = "active"
    STATUS_REJECTED = "rejected"

    STATUS_CHOICES = [
        (STATUS_PENDING_APPROVAL, "Pending approval"),
        (STATUS_ACTIVE, "Active"),
        (STATUS_REJECTED, "Rejected"),
    ]

    id = models.UUIDField(
        primary_key=True,
        editable=False,
        help_text="Supabase identity id",
    )
    email = models.EmailField(unique=True)
    first_name = models.CharField(max_length=100)
    last_name = models.CharField(max_length=100)
    mobile_number = models.CharField(max_length=20, blank=True, default="")

    role = models.ForeignKey(
        Role,
        on_delete=models.PROTECT,
        related_name="profiles",
    )
    jurisdiction = models.ForeignKey(
        "jurisdictions.Jurisdiction",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        db_column="jurisdiction_code",
        related_name="profiles",
    )
    is_jurisdiction_admin = models.BooleanField(default=False, editable=False)

    status = models.CharField(
        max_length=20,
        choices=STATUS_CHOICES,
        default=STATUS_PENDING_APPROVAL,
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "profiles"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["jurisdiction", "status"], name="profiles_jurisdiction_status"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["jurisdiction"],
                condition=Q(is_jurisdiction_admin=True) & ~Q(status="rejected"),
                name="uniq_active_jurisdiction_admin",
            ),
        ]

    def __str__(self):
        return f"{self.email} ({self.role_id}) - {self.jurisdiction_id or 'No Jurisdiction'}"

    @property
    def is_authenticated(self):
        # Lets DRF treat a Profile as request.user.
        return True

    @property
    def role_name(self):
        return self.role.name

    def has_role(self, *names):
        return self.role.name in names


class Registration(models.Model):
    """
    One row per identity created through signup.

    Lets a retried signup resume at the visibility wait instead of creating a
    second identity, and lets operators find identities whose profile never
    got written.
    """

    email = models.EmailField(unique=True)
    identity_id = models.UUIDField(unique=True)
    password_hash = models.CharField(max_length=255)

    created_at = models.DateTimeField(auto_now_add=True)
    completed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = "registrations"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["completed_at", "created_at"], name="registrations_pending_idx"),
        ]

    def __str__(self):
        state = "completed" if self.completed_at else "pending"
        return f"Registration for {self.email} ({state})"

    @property
    def is_completed(self):
        return self.completed_at is not None
