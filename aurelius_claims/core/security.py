"""Bearer-token authentication and caller resolution."""

from __future__ import annotations

from functools import lru_cache
from typing import Any, Iterable

import httpx
import structlog
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import ExpiredSignatureError, JWTError, jwt
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from aurelius_claims.core.config import Settings, get_settings
from aurelius_claims.core.errors import AuthError, TransportError
from aurelius_claims.db import get_session_dependency
from aurelius_claims.models import Profile
from aurelius_claims.services.roles import (
    Anonymous,
    Authenticated,
    Caller,
    landing_route,
    require_approver,
    require_lecturer,
    resolve_role,
)

LOGGER = structlog.get_logger(__name__)

RS_ALGORITHMS = ["RS256"]
HS_ALGORITHMS = ["HS256"]
_scheme = HTTPBearer(auto_error=False)


# -------------------------------------------------------
# JWKS + Token Utilities
# -------------------------------------------------------

@lru_cache()
def _fetch_jwks(domain: str, timeout: float) -> dict[str, Any]:
    """Fetch (and cache) the JWKS for the given identity provider domain."""
    jwks_url = f"https://{domain}/.well-known/jwks.json"
    try:
        with httpx.Client(timeout=timeout) as client:
            response = client.get(jwks_url)
            response.raise_for_status()
            return response.json()
    except httpx.HTTPError as exc:
        LOGGER.error("jwks_fetch_failed", domain=domain, error=str(exc))
        raise TransportError(
            "Unable to retrieve signing keys",
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        ) from exc


def _get_rsa_key(token: str, domain: str, timeout: float) -> dict[str, str] | None:
    """Return the RSA key that matches the token header."""
    try:
        unverified_header = jwt.get_unverified_header(token)
    except JWTError as exc:
        raise AuthError("Invalid authorization header") from exc

    if "kid" not in unverified_header:
        return None

    jwks = _fetch_jwks(domain, timeout)
    for key in jwks.get("keys", []):
        if key.get("kid") == unverified_header["kid"]:
            return {
                "kty": key.get("kty"),
                "kid": key.get("kid"),
                "use": key.get("use"),
                "n": key.get("n"),
                "e": key.get("e"),
            }
    return None


def _normalize_audience_values(values: Iterable[str]) -> list[str]:
    """Return a list of canonical audience strings with slash variants."""
    normalized: list[str] = []
    for value in values:
        candidate = value.strip()
        if not candidate:
            continue

        trimmed = candidate.rstrip("/")
        for option in (candidate, trimmed, f"{trimmed}/" if trimmed else ""):
            if option and option not in normalized:
                normalized.append(option)
    return normalized


def _collect_audience_values(raw_value: str | None) -> list[str]:
    """Split the configured audience string into individual values."""
    if not raw_value:
        return []
    expanded: list[str] = []
    for candidate in raw_value.replace("\n", " ").split():
        for part in candidate.split(","):
            value = part.strip()
            if value and value not in expanded:
                expanded.append(value)
    return expanded


def _check_audience(payload: dict[str, Any], audiences: list[str]) -> None:
    token_audiences: list[str] = []
    audience_claim = payload.get("aud")
    if isinstance(audience_claim, str):
        token_audiences.append(audience_claim)
    elif isinstance(audience_claim, (list, tuple, set)):
        token_audiences.extend(entry for entry in audience_claim if isinstance(entry, str))
    if not token_audiences:
        raise AuthError("Token missing audience")

    allowed = set(_normalize_audience_values(audiences))
    if not set(_normalize_audience_values(token_audiences)) & allowed:
        raise AuthError("Invalid token audience")


def decode_token(token: str, settings: Settings | None = None) -> dict[str, Any]:
    """Verify a bearer token and return its claims.

    A configured shared secret selects HS256 verification; otherwise the token
    must be an RS256 token signed by a key from the configured domain's JWKS.
    """

    settings = settings or get_settings()
    if not settings.auth_jwt_secret and not settings.auth_domain:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Authentication is not configured",
        )

    try:
        if settings.auth_jwt_secret:
            payload = jwt.decode(
                token,
                settings.auth_jwt_secret,
                algorithms=HS_ALGORITHMS,
                options={"verify_aud": False},
            )
        else:
            rsa_key = _get_rsa_key(token, settings.auth_domain, settings.http_timeout_seconds)
            if not rsa_key:
                raise AuthError("Unable to validate token")
            payload = jwt.decode(
                token,
                rsa_key,
                algorithms=RS_ALGORITHMS,
                issuer=f"https://{settings.auth_domain}/",
                options={"verify_aud": False},
            )
    except ExpiredSignatureError as exc:
        raise AuthError("Session expired") from exc
    except JWTError as exc:
        raise AuthError("Invalid token") from exc

    audiences = _collect_audience_values(settings.auth_audience)
    if audiences:
        _check_audience(payload, audiences)

    return payload


# -------------------------------------------------------
# Profile + Caller Resolution
# -------------------------------------------------------

def _display_name(payload: dict[str, Any], email: str) -> str:
    metadata = payload.get("user_metadata")
    if isinstance(metadata, dict) and metadata.get("full_name"):
        return str(metadata["full_name"]).strip()
    return str(payload.get("name") or payload.get("nickname") or email).strip()


def resolve_profile(session: Session, payload: dict[str, Any]) -> Profile:
    """Map verified token claims onto a profile, provisioning it on first sight."""
    subject = payload.get("sub")
    if not subject:
        raise AuthError("Token missing subject")

    profile = session.get(Profile, subject)
    if profile:
        return profile

    email = payload.get("email")
    if not email:
        LOGGER.warning("profile_provision_skipped", subject=subject, reason="missing_email")
        raise AuthError("Token missing email")

    profile = Profile(id=subject, email=email, full_name=_display_name(payload, email))
    session.add(profile)
    try:
        session.commit()
    except IntegrityError as exc:
        session.rollback()
        # A concurrent request for the same subject may have provisioned it first.
        existing = session.get(Profile, subject)
        if existing:
            return existing
        LOGGER.warning("profile_provision_conflict", user_id=subject, email=email)
        raise AuthError("Email already linked to another account") from exc
    LOGGER.info("profile_provisioned", user_id=subject, email=email)
    return profile


def resolve_session(session: Session, payload: dict[str, Any] | None) -> Anonymous | Authenticated:
    """Resolve a request's session into an anonymous or authenticated state."""

    if payload is None:
        return Anonymous()

    profile = resolve_profile(session, payload)
    role = resolve_role(session, profile.id)
    caller = Caller(
        user_id=profile.id,
        email=profile.email,
        full_name=profile.full_name,
        role=role,
    )
    return Authenticated(caller=caller, landing=landing_route(role))


# -------------------------------------------------------
# FastAPI dependencies
# -------------------------------------------------------

def get_token_payload(
    credentials: HTTPAuthorizationCredentials | None = Depends(_scheme),
) -> dict[str, Any] | None:
    """Return verified token claims, or ``None`` when no token was sent."""
    if credentials is None:
        return None
    return decode_token(credentials.credentials)


def get_session_state(
    payload: dict[str, Any] | None = Depends(get_token_payload),
    session: Session = Depends(get_session_dependency),
) -> Anonymous | Authenticated:
    return resolve_session(session, payload)


def get_current_caller(
    state: Anonymous | Authenticated = Depends(get_session_state),
) -> Caller:
    """Resolve the authenticated caller or fail with a 401."""
    if isinstance(state, Anonymous):
        raise AuthError("Authorization header missing")
    return state.caller


def require_lecturer_caller(caller: Caller = Depends(get_current_caller)) -> Caller:
    """Dependency ensuring the caller is a lecturer."""
    return require_lecturer(caller)


def require_approver_caller(caller: Caller = Depends(get_current_caller)) -> Caller:
    """Dependency ensuring the caller is a coordinator or academic manager."""
    return require_approver(caller)


__all__ = [
    "decode_token",
    "get_current_caller",
    "get_session_state",
    "get_token_payload",
    "require_approver_caller",
    "require_lecturer_caller",
    "resolve_profile",
    "resolve_session",
]
