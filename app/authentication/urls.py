"""
URL configuration for authentication.

Routes:
    POST /api/v1/auth/token/          - Obtain JWT access/refresh pair
    POST /api/v1/auth/token/refresh/  - Refresh access token
    GET  /api/v1/auth/me/             - Current user
"""

from django.urls import path
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

from authentication.views import CurrentUserView

app_name = "authentication"

urlpatterns = [
    path("token/", TokenObtainPairView.as_view(), name="token_obtain_pair"),
    path("token/refresh/", TokenRefreshView.as_view(), name="token_refresh"),
    path("me/", CurrentUserView.as_view(), name="me"),
]
