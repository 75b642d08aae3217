"""
Admin configuration for accounts app.
"""

from django.contrib import admin
from .models import Profile, Registration, Role


@admin.register(Role)
class RoleAdmin(admin.ModelAdmin):
    list_display = ['name', 'is_jurisdiction_admin', 'allows_self_signup', 'created_at']
    readonly_fields = ['created_at']


@admin.register(Profile)
class ProfileAdmin(admin.ModelAdmin):
    list_display = [
        'email', 'first_name', 'last_name', 'role', 'jurisdiction',
        'status', 'is_jurisdiction_admin', 'created_at'
    ]
    list_filter = ['status', 'role', 'is_jurisdiction_admin', 'created_at']
    search_fields = ['email', 'first_name', 'last_name', 'id']
    readonly_fields = ['id', 'is_jurisdiction_admin', 'created_at', 'updated_at']

    fieldsets = (
        ('Identity', {
            'fields': ('id', 'email')
        }),
        ('Personal Information', {
            'fields': ('first_name', 'last_name', 'mobile_number')
        }),
        ('Access', {
            'fields': ('role', 'jurisdiction', 'is_jurisdiction_admin', 'status')
        }),
        ('Timestamps', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )


@admin.register(Registration)
class RegistrationAdmin(admin.ModelAdmin):
    list_display = ['email', 'identity_id', 'created_at', 'completed_at']
    list_filter = ['completed_at', 'created_at']
    search_fields = ['email', 'identity_id']
    exclude = ['password_hash']
    readonly_fields = ['email', 'identity_id', 'created_at', 'completed_at']
    date_hierarchy = 'created_at'

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False
