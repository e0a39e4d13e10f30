"""Aggregate user namespaces under /api/v1/.

Mounts the "auth" URLconf and the current-user profile endpoint.
"""

from django.urls import include, path

from .views import current_user

urlpatterns = [
    path("auth/", include("users.auth_urls")),
    path("me/", current_user, name="me"),
]
