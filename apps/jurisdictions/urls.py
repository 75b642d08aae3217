"""
URL configuration for jurisdictions.
"""

from django.urls import path
from . import views

urlpatterns = [
    path("<str:code>/admin-status/", views.admin_status, name="jurisdiction-admin-status"),
]
