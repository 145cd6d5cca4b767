from dataclasses import dataclass
from datetime import datetime, timezone
from fastapi import Depends, HTTPException, Request, Response, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from typing import Optional

from app.errors import RateLimitError
from app.utils.auth import decode_access_token
from app.utils.privacy import get_client_ip, hash_ip
from app.utils.rate_limit import RateLimiter, RateLimitPolicy

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class AdminIdentity:
    subject: str


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> AdminIdentity:
    subject = decode_access_token(credentials.credentials) if credentials else None
    if not subject:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return AdminIdentity(subject=subject)


def get_ip_hash(request: Request) -> str:
    return hash_ip(get_client_ip(request.headers))


def get_rate_limiter(request: Request) -> RateLimiter:
    return request.app.state.rate_limiter


def rate_limit_headers(limit: int, remaining: int, reset_time: int) -> dict:
    return {
        "X-RateLimit-Limit": str(limit),
        "X-RateLimit-Remaining": str(remaining),
        "X-RateLimit-Reset": datetime.fromtimestamp(reset_time / 1000, tz=timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z"),
    }


def rate_limited(policy: RateLimitPolicy, message: str):
    """Dépendance : applique `policy` sur l'IP hachée avant toute validation du body."""

    def dependency(
        response: Response,
        ip_hash: str = Depends(get_ip_hash),
        limiter: RateLimiter = Depends(get_rate_limiter),
    ) -> str:
        decision = limiter.check(policy.key(ip_hash), policy.max_requests, policy.window_ms)
        if not decision.allowed:
            raise RateLimitError(message, policy.max_requests, decision.remaining, decision.reset_time)
        response.headers.update(rate_limit_headers(policy.max_requests, decision.remaining, decision.reset_time))
        return ip_hash

    return dependency
