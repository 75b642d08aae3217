"""
Views for jurisdiction lookups.
"""

from rest_framework import status
from rest_framework.decorators import api_view, authentication_classes, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from apps.accounts.store import ProfileStore
from .models import Jurisdiction


@api_view(['GET'])
@authentication_classes([])
@permission_classes([AllowAny])
def admin_status(request, code):
    """
    Whether a barangay already has an active admin.

    Advisory only, for the signup form. The signup itself re-checks
    atomically and may still be refused.
    """
    try:
        jurisdiction = Jurisdiction.objects.get(code=code)
    except Jurisdiction.DoesNotExist:
        return Response({
            'success': False,
            'error': 'Barangay not found'
        }, status=status.HTTP_404_NOT_FOUND)

    return Response({
        'success': True,
        'data': {
            'jurisdiction_code': jurisdiction.code,
            'name': jurisdiction.name,
            'has_admin': ProfileStore().get_jurisdiction_admin_status(jurisdiction.code),
        }
    })
