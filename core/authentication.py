from django.conf import settings
from rest_framework_simplejwt.authentication import JWTAuthentication


class CookieJWTAuthentication(JWTAuthentication):
    """
    JWT read from an HttpOnly cookie instead of the Authorization header.

    Off unless USE_COOKIE_AUTH is set; the bearer header keeps precedence
    because JWTAuthentication runs first in DEFAULT_AUTHENTICATION_CLASSES.
    """

    def authenticate(self, request):
        if not getattr(settings, "USE_COOKIE_AUTH", False):
            return None

        raw_token = request.COOKIES.get(getattr(settings, "COOKIE_AUTH_ACCESS_NAME", "gf_access"))
        if not raw_token:
            return None

        validated_token = self.get_validated_token(raw_token)
        return self.get_user(validated_token), validated_token
