from rest_framework.settings import api_settings
from rest_framework.throttling import SimpleRateThrottle


class _PathPrefixRateThrottle(SimpleRateThrottle):
    """
    Rate limit only the requests whose path starts with one of
    `path_prefixes` (and whose method is in `methods`, when set).

    Registered globally in DEFAULT_THROTTLE_CLASSES; every other request
    gets a None cache key and is not throttled.
    """

    scope = ""
    path_prefixes: tuple[str, ...] = ()
    methods: tuple[str, ...] = ()

    def get_rate(self):
        if not self.scope:
            return None
        return api_settings.DEFAULT_THROTTLE_RATES.get(self.scope)

    def get_cache_key(self, request, view):
        request_path = getattr(request, "path", "") or ""
        if not any(request_path.startswith(prefix) for prefix in self.path_prefixes):
            return None
        if self.methods and request.method not in self.methods:
            return None

        user = getattr(request, "user", None)
        if user is not None and user.is_authenticated:
            ident = f"user:{user.pk}"
        else:
            ident = self.get_ident(request)

        return self.cache_format % {"scope": self.scope, "ident": ident}


class TokenEndpointRateThrottle(_PathPrefixRateThrottle):
    scope = "token"
    path_prefixes = ("/api/token/",)
    methods = ("POST",)


class GarminWebhookRateThrottle(_PathPrefixRateThrottle):
    # Garmin pushes from a handful of IPs; keyed by client IP.
    scope = "garmin_webhook"
    path_prefixes = ("/api/garmin/webhook",)
    methods = ("POST",)
