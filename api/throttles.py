import hashlib
import re

from rest_framework.throttling import UserRateThrottle


PERIOD_SECONDS = {'s': 1, 'm': 60, 'h': 3600, 'd': 86400}


class WindowedRateThrottle(UserRateThrottle):
    """
    Accepts rates with a multiplied period, e.g. "100/15m" means
    100 requests per 15 minutes. Plain DRF rates ("10/min") still work.
    """

    def parse_rate(self, rate):
        if rate is None:
            return (None, None)

        num, period = rate.split('/')
        match = re.match(r'^(\d*)\s*([smhd])', period.strip())
        if not match:
            raise ValueError(f"Invalid throttle rate: {rate}")

        multiplier = int(match.group(1) or 1)
        return (int(num), multiplier * PERIOD_SECONDS[match.group(2)])

    def get_ident(self, request):
        # Fallback for anonymous users
        ip = (
            request.META.get("HTTP_X_FORWARDED_FOR") or
            request.META.get("REMOTE_ADDR", "")
        ).split(",")[0].strip()

        ua = request.META.get("HTTP_USER_AGENT", "")

        if not ip and not ua:
            # Use static fallback to group unknown anonymous users
            return "anonymous-unknown"

        # Use a stable hash for consistent throttling
        ident_raw = f"{ip}:{ua}"
        return hashlib.sha256(ident_raw.encode("utf-8")).hexdigest()

    def get_cache_key(self, request, view):
        if request.user and request.user.is_authenticated:
            # Authenticated users are throttled by their user ID
            ident = str(request.user.pk)
        else:
            ident = self.get_ident(request)

        return self.cache_format % {'scope': self.scope, 'ident': ident}


class GeneralRequestThrottle(WindowedRateThrottle):
    scope = 'general'


class AIRequestThrottle(WindowedRateThrottle):
    scope = 'ai'


class AuthRequestThrottle(WindowedRateThrottle):
    scope = 'auth'

    def allow_request(self, request, view):
        # Only credential-bearing requests count against the auth budget
        if request.method != 'POST':
            return True
        return super().allow_request(request, view)
