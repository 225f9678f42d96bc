from __future__ import annotations

import logging
import time
from typing import Any, Dict, Optional

import httpx
from jose import jwk, jwt
from jose.exceptions import JWSError, JWTError
from jose.utils import base64url_decode

from briefflow.config import settings
from briefflow.errors import BriefflowError, UnauthorizedError

logger = logging.getLogger("auth.clerk")


class JWKSUnavailableError(BriefflowError):
    status_code = 503
    code = "auth_unavailable"


class _JWKSCache:
    def __init__(self, ttl_seconds: int = 300) -> None:
        self.jwks: Optional[Dict[str, Any]] = None
        self.cached_at: float = 0.0
        self.ttl_seconds = ttl_seconds

    def get(self) -> Optional[Dict[str, Any]]:
        if self.jwks and (time.time() - self.cached_at) < self.ttl_seconds:
            return self.jwks
        return None

    def set(self, jwks: Optional[Dict[str, Any]]) -> None:
        self.jwks = jwks
        self.cached_at = time.time() if jwks else 0.0


_cache = _JWKSCache()


def _fetch_jwks() -> Dict[str, Any]:
    cached = _cache.get()
    if cached:
        return cached
    try:
        resp = httpx.get(settings.CLERK_JWKS_URL, timeout=10)
        resp.raise_for_status()
        data = resp.json()
    except httpx.HTTPError as exc:
        logger.exception("JWKS fetch failed", extra={"jwks_url": settings.CLERK_JWKS_URL})
        raise JWKSUnavailableError("Unable to fetch signing keys.") from exc
    _cache.set(data)
    return data


def _find_key(jwks: Dict[str, Any], kid: str) -> Optional[Dict[str, Any]]:
    for key in jwks.get("keys", []):
        if key.get("kid") == kid:
            return key
    return None


def _get_public_key(token: str) -> Dict[str, Any]:
    try:
        headers = jwt.get_unverified_header(token)
    except JWTError as exc:
        logger.warning("Invalid token header", exc_info=exc)
        raise UnauthorizedError("Invalid token.") from exc
    kid = headers.get("kid")
    if not kid:
        raise UnauthorizedError("Missing kid in token.")

    key = _find_key(_fetch_jwks(), kid)
    if key is None:
        # Keys may have rotated; refetch once.
        _cache.set(None)
        key = _find_key(_fetch_jwks(), kid)
    if key is None:
        logger.warning("Signing key not found", extra={"kid": kid})
        raise UnauthorizedError("Signing key not found.")
    return key


def _audience_matches(claims: Dict[str, Any]) -> bool:
    if not settings.CLERK_AUDIENCE:
        return True
    aud = claims.get("aud")
    if aud is None:
        # Clerk session tokens omit aud unless a custom template sets it.
        return True
    token_audiences = {aud} if isinstance(aud, str) else set(aud)
    return bool(token_audiences & set(settings.CLERK_AUDIENCE))


def verify_clerk_token(token: str) -> Dict[str, Any]:
    try:
        public_key = _get_public_key(token)
        key = jwk.construct(public_key)

        message, encoded_sig = token.rsplit(".", 1)
        decoded_sig = base64url_decode(encoded_sig.encode())
        if not key.verify(message.encode(), decoded_sig):
            raise UnauthorizedError("Invalid token signature.")

        claims = jwt.decode(
            token,
            key=key.to_pem().decode(),
            algorithms=[public_key.get("alg", "RS256")],
            issuer=settings.CLERK_JWT_ISSUER,
            options={"verify_aud": False},
        )
    except (JWTError, JWSError, ValueError) as exc:
        logger.warning("Token verification failed", exc_info=exc)
        raise UnauthorizedError("Invalid token.") from exc

    if not _audience_matches(claims):
        logger.warning("Token audience rejected", extra={"aud": claims.get("aud"), "sub": claims.get("sub")})
        raise UnauthorizedError("Invalid token audience.")

    logger.debug(
        "Verified Clerk token",
        extra={"kid": public_key.get("kid"), "iss": claims.get("iss"), "sub": claims.get("sub")},
    )
    return claims
