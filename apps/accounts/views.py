"""
Views for signup, profile and admin endpoints.
"""

import logging

from django.conf import settings
from django.core.paginator import EmptyPage, Paginator
from rest_framework import status
from rest_framework.decorators import api_view, authentication_classes, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from .errors import RegistrationError
from .permissions import IsAdminRole, IsProfileUser
from .retry import Deadline
from .serializers import ProfileSerializer, UserListSerializer
from .services import UserPermissionService, get_registration_service

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


# =============================================================================
# Registration
# =============================================================================

@api_view(['POST'])
@authentication_classes([])
@permission_classes([AllowAny])
def signup(request):
    """
    Register a new user and create their profile.

    Request body:
    {
        "email": "juan@example.com",
        "password": "Secret123",
        "first_name": "Juan",
        "last_name": "Dela Cruz",
        "mobile_number": "09171234567",
        "role_name": "admin",
        "jurisdiction_code": "042108001"
    }

    201 when the profile was created, 200 when the same signup is replayed.
    """
    deadline = Deadline(settings.REGISTRATION['REQUEST_DEADLINE'])

    try:
        result = get_registration_service().register(request.data, deadline=deadline)
    except RegistrationError as exc:
        return Response(exc.to_response(), status=exc.status_code)

    if result.created:
        message = 'Registration successful. Your account is pending approval.'
        status_code = status.HTTP_201_CREATED
    else:
        message = 'Account already registered.'
        status_code = status.HTTP_200_OK

    return Response({
        'success': True,
        'message': message,
        'data': ProfileSerializer(result.profile).data
    }, status=status_code)


# =============================================================================
# User Profile
# =============================================================================

@api_view(['GET'])
@permission_classes([IsProfileUser])
def profile(request):
    """
    Get current user profile.
    """
    return Response({
        'success': True,
        'data': ProfileSerializer(request.user).data
    })


# =============================================================================
# Admin
# =============================================================================

class AdminUserListView(APIView):
    """GET /api/admin/users/: profiles visible to the calling admin, newest first."""

    permission_classes = [IsAdminRole]

    def get(self, request):
        try:
            page_number = int(request.query_params.get('page', 1))
            page_size = int(request.query_params.get('page_size', DEFAULT_PAGE_SIZE))
        except ValueError:
            return Response({
                'success': False,
                'error': 'page and page_size must be integers'
            }, status=status.HTTP_400_BAD_REQUEST)

        if page_number < 1 or not 1 <= page_size <= MAX_PAGE_SIZE:
            return Response({
                'success': False,
                'error': f'page must be >= 1 and page_size between 1 and {MAX_PAGE_SIZE}'
            }, status=status.HTTP_400_BAD_REQUEST)

        users = UserPermissionService.visible_profiles(request.user).order_by('-created_at', 'id')
        paginator = Paginator(users, page_size)
        try:
            page = paginator.page(page_number)
            results = UserListSerializer(page.object_list, many=True).data
        except EmptyPage:
            results = []

        return Response({
            'success': True,
            'count': paginator.count,
            'page': page_number,
            'page_size': page_size,
            'total_pages': paginator.num_pages,
            'users': results,
        })
