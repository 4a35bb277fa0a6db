# backend/urls.py

from django.conf import settings
from django.contrib import admin
from django.urls import include, path

# --- Documentation (Swagger) and authentication (JWT) ---
from drf_yasg import openapi
from drf_yasg.views import get_schema_view
from rest_framework import permissions
from rest_framework_simplejwt.views import (
    TokenObtainPairView,
    TokenRefreshView,
)

schema_view = get_schema_view(
    openapi.Info(
        title="GoFast API",
        default_version='v1',
        description="Athletes, run crews, city runs and Garmin sync",
    ),
    public=True,
    permission_classes=(permissions.AllowAny,),
)

urlpatterns = [
    # 1. Django admin
    path('admin/', admin.site.urls),

    # 2. Nested admin helpers (crew -> runs -> RSVPs)
    path('_nested_admin/', include('nested_admin.urls')),

    # ==============================================================
    # 3. API REST ENDPOINTS
    # ==============================================================
    path('api/', include('core.urls')),
    path('api/', include('runcrews.urls')),
    path('api/', include('cityruns.urls')),

    # 4. JWT tokens
    path('api/token/', TokenObtainPairView.as_view(), name='token_obtain_pair'),
    path('api/token/refresh/', TokenRefreshView.as_view(), name='token_refresh'),
]

# 5. Interactive docs
if getattr(settings, "SWAGGER_ENABLED", False):
    urlpatterns += [
        path('swagger/', schema_view.with_ui('swagger', cache_timeout=0), name='schema-swagger-ui'),
    ]
