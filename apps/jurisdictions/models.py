"""
Jurisdiction reference model.

Jurisdiction: an administrative area (a barangay) keyed by its PSGC code.
Loaded out of band from the PSGC tables; the signup flow only reads it.
"""

from django.db import models


class Jurisdiction(models.Model):
    """
    A barangay that profiles can be assigned to.
    At most one active jurisdiction admin may reference it at a time; that
    rule lives on the Profile table (see apps.accounts.models.Profile).
    """

    code = models.CharField(
        max_length=10,
        primary_key=True,
        help_text="PSGC barangay code",
    )
    name = models.CharField(max_length=255)
    city_municipality_name = models.CharField(max_length=255, blank=True, default="")

    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "jurisdictions"
        ordering = ["code"]

    def __str__(self):
        return f"{self.name} ({self.code})"
