# Per-route rate limits, kept in one place
from fastapi_limiter.depends import RateLimiter
from keyserver.core.config import settings

# path: limit
API_RATE_LIMITS = {
    # public key API (mirrors the 100 requests / 15 minutes window per client)
    "/api/keys/create": {"times": 100, "seconds": 900},
    "/api/keys/validate": {"times": 100, "seconds": 900},
    "/api/keys/info": {"times": 100, "seconds": 900},
    "/api/keys/user": {"times": 100, "seconds": 900},
    "/bind": {"times": 100, "seconds": 900},

    # admin auth
    "/admin/auth/login": {"times": 10, "seconds": 60},
    "/admin/auth/logout": {"times": 30, "seconds": 60},

    # admin key management
    "/api/keys/admin": {"times": 60, "seconds": 60},
    "/admin/api": {"times": 60, "seconds": 60},
}

async def _noop_dep():
    return None

def get_rate_limiter(path: str):
    if not settings.RATE_LIMIT_ENABLED:
        # FastAPI still needs a callable dependency
        return _noop_dep
    conf = API_RATE_LIMITS.get(path)
    if conf:
        return RateLimiter(times=conf["times"], seconds=conf["seconds"])
    return _noop_dep
