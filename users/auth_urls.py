"""Authentication routes grouped under /api/v1/auth.

Includes JWT obtain (sign in), refresh, and verify.
"""

from django.urls import path

from .views import RefreshView, SignInView, VerifyView

urlpatterns = [
    path("signin/", SignInView.as_view(), name="signin"),
    path("refresh/", RefreshView.as_view(), name="token_refresh"),
    path("verify/", VerifyView.as_view(), name="token_verify"),
]
