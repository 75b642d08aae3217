"""
Admin configuration for jurisdictions app.
"""

from django.contrib import admin
from .models import Jurisdiction


@admin.register(Jurisdiction)
class JurisdictionAdmin(admin.ModelAdmin):
    list_display = ['code', 'name', 'city_municipality_name', 'is_active', 'updated_at']
    list_filter = ['is_active']
    search_fields = ['code', 'name', 'city_municipality_name']
    readonly_fields = ['created_at', 'updated_at']
