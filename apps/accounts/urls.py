"""
URL configuration for accounts.
"""

from django.urls import path
from . import views

urlpatterns = [
    # ------------------------------------------------------------------ #
    # Public auth endpoints                                                 #
    # ------------------------------------------------------------------ #
    path("auth/signup/", views.signup, name="auth-signup"),

    # ------------------------------------------------------------------ #
    # Authenticated user endpoints                                          #
    # ------------------------------------------------------------------ #
    path("auth/profile/", views.profile, name="auth-profile"),

    # ------------------------------------------------------------------ #
    # Admin endpoints: super admins and barangay admins                     #
    # ------------------------------------------------------------------ #
    path("admin/users/", views.AdminUserListView.as_view(), name="admin-user-list"),
]
