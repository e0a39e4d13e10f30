"""Users app API views.

Endpoints include:
- me: returns the current authenticated user's profile.
- signin / refresh / verify: JWT token flows for the admin dashboard.
"""

from drf_spectacular.utils import OpenApiResponse, extend_schema, extend_schema_view
from rest_framework.decorators import api_view, permission_classes, throttle_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.throttling import ScopedRateThrottle
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView, TokenVerifyView

from .logging import log_auth_event
from .serializers import IdentifierTokenObtainPairSerializer, UserMeSerializer


@extend_schema(
    operation_id="users_current_user",
    summary="Get current user profile",
    description=(
        "Returns the current authenticated user's profile.\n\n"
        "Auth: Requires JWT (Authorization: Bearer <token>) or session auth.\n\n"
        "Errors: 401 if authentication credentials are missing or invalid."
    ),
    tags=["User Endpoints"],
    responses={
        200: OpenApiResponse(description="User profile", response=UserMeSerializer),
        401: OpenApiResponse(description="Unauthorized"),
    },
)
@api_view(["GET"])
@permission_classes([IsAuthenticated])
@throttle_classes([ScopedRateThrottle])
def current_user(request):
    """Return the authenticated user's basic profile fields."""
    log_auth_event("profile", request, user=request.user)
    serializer = UserMeSerializer(request.user)
    return Response(serializer.data)


# api_view has no decorator for scopes; set it on the generated view class
current_user.cls.throttle_scope = "profile"


class _AuthEventMixin:
    """Log every token flow outcome under the ``auth`` logger."""

    throttle_classes = [ScopedRateThrottle]
    auth_action = ""

    def post(self, request, *args, **kwargs):
        try:
            resp = super().post(request, *args, **kwargs)
        except Exception:
            log_auth_event(self.auth_action, request, status="failed")
            raise
        log_auth_event(self.auth_action, request, status="success" if resp.status_code == 200 else "failed")
        return resp


@extend_schema_view(
    post=extend_schema(
        tags=["User Endpoints"],
        summary="Sign in",
        description="Exchange an email or username plus password for an access/refresh JWT pair.",
    )
)
class SignInView(_AuthEventMixin, TokenObtainPairView):
    throttle_scope = "signin"
    auth_action = "signin"
    serializer_class = IdentifierTokenObtainPairSerializer


@extend_schema_view(post=extend_schema(tags=["User Endpoints"], summary="Refresh access token"))
class RefreshView(_AuthEventMixin, TokenRefreshView):
    throttle_scope = "token_refresh"
    auth_action = "token_refresh"


@extend_schema_view(post=extend_schema(tags=["User Endpoints"], summary="Verify token"))
class VerifyView(_AuthEventMixin, TokenVerifyView):
    throttle_scope = "token_verify"
    auth_action = "token_verify"
