"""
Django REST Framework authentication classes for Supabase.
"""

import logging

from django.core.exceptions import ValidationError
from django.db import DatabaseError
from rest_framework import authentication
from rest_framework import exceptions

from .models import Profile
from .supabase_client import supabase_auth

logger = logging.getLogger(__name__)


class SupabaseJWTAuthentication(authentication.BaseAuthentication):
    """
    Authenticate requests using Supabase JWT tokens.

    The token should be provided in the Authorization header:
    Authorization: Bearer <supabase-jwt-token>

    The token subject must already have a Profile. Profiles are only written
    by the signup flow, never here.
    """

    keyword = 'Bearer'

    def authenticate(self, request):
        auth_header = authentication.get_authorization_header(request).decode('utf-8')

        if not auth_header:
            return None

        if not auth_header.startswith(f'{self.keyword} '):
            return None

        token = auth_header[len(f'{self.keyword} '):].strip()

        if not token:
            return None

        return self.authenticate_credentials(token)

    def authenticate_credentials(self, token):
        is_valid, result = supabase_auth.verify_jwt(token)

        if not is_valid:
            raise exceptions.AuthenticationFailed(result.get('error', 'Invalid token'))

        # Supabase API returns 'id', JWT decode returns 'sub'
        identity_id = result.get('sub') or result.get('id')
        if not identity_id:
            logger.error(f"No user ID found in token data. Keys: {list(result.keys())}")
            raise exceptions.AuthenticationFailed('Invalid token: no user ID')

        try:
            profile = Profile.objects.select_related('role', 'jurisdiction').get(id=identity_id)
        except (Profile.DoesNotExist, ValueError, ValidationError):
            raise exceptions.AuthenticationFailed('No profile found for this account')
        except DatabaseError as e:
            logger.error(f"Profile lookup failed for {identity_id}: {e}")
            raise exceptions.AuthenticationFailed('User authentication failed')

        if profile.status == Profile.STATUS_REJECTED:
            raise exceptions.AuthenticationFailed('User account is disabled')

        return (profile, result)

    def authenticate_header(self, request):
        return self.keyword
