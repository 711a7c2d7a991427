"""
Password hashing and HS256 access tokens.

Tokens are compact JWTs signed with ``FORTRESS_JWT_SECRET`` and carry the
user's role and organization so every request can be tenant scoped
without a database lookup.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import json
import os
import secrets
import time
from typing import Any, Optional

PASSWORD_SCHEME = "pbkdf2_sha256"
DEV_JWT_SECRET = "dev-jwt-secret-change-me"
_TOKEN_HEADER = {"alg": "HS256", "typ": "JWT"}


class TokenError(ValueError):
    """Raised for any token that cannot be trusted."""


def _hash_rounds() -> int:
    return int(os.getenv("FORTRESS_PASSWORD_HASH_ROUNDS", "120000"))


def _pbkdf2(password: str, salt: str, rounds: int) -> str:
    return hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt.encode("ascii"), rounds).hex()


def hash_password(password: str) -> str:
    if not password:
        raise ValueError("Password cannot be empty")
    rounds = _hash_rounds()
    salt = secrets.token_hex(16)
    return "$".join([PASSWORD_SCHEME, str(rounds), salt, _pbkdf2(password, salt, rounds)])


def verify_password(password: str, encoded: str) -> bool:
    parts = (encoded or "").split("$")
    if len(parts) != 4 or parts[0] != PASSWORD_SCHEME or not parts[1].isdigit():
        return False
    _, rounds, salt, expected = parts
    return hmac.compare_digest(_pbkdf2(password, salt, int(rounds)), expected)


def _segment(data: dict[str, Any]) -> str:
    raw = json.dumps(data, separators=(",", ":")).encode("utf-8")
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _unsegment(value: str) -> bytes:
    return base64.urlsafe_b64decode(value + "=" * (-len(value) % 4))


def _signature(signing_input: str, secret: str) -> bytes:
    return hmac.new(secret.encode("utf-8"), signing_input.encode("ascii"), hashlib.sha256).digest()


def jwt_secret() -> str:
    """Configured secret, or the dev fallback outside prod. Empty in prod when unset."""
    secret = (os.getenv("FORTRESS_JWT_SECRET") or "").strip()
    if secret:
        return secret
    env = (os.getenv("FORTRESS_ENV") or os.getenv("APP_ENV") or "dev").strip().lower()
    return "" if env == "prod" else DEV_JWT_SECRET


def _token_ttl_seconds() -> int:
    try:
        minutes = int(os.getenv("FORTRESS_JWT_EXP_MIN", "720"))
    except ValueError:
        minutes = 720
    return max(1, minutes) * 60


def create_access_token(*, sub: str, role: str, user_id: str, organization_id: Optional[str]) -> str:
    secret = jwt_secret()
    if not secret:
        raise RuntimeError("FORTRESS_JWT_SECRET is required when auth is enabled")
    issued = int(time.time())
    claims = {
        "sub": sub,
        "role": role,
        "user_id": user_id,
        "org": organization_id,
        "iat": issued,
        "exp": issued + _token_ttl_seconds(),
    }
    signing_input = f"{_segment(_TOKEN_HEADER)}.{_segment(claims)}"
    signature = base64.urlsafe_b64encode(_signature(signing_input, secret)).rstrip(b"=").decode("ascii")
    return f"{signing_input}.{signature}"


def decode_access_token(token: str) -> dict[str, Any]:
    secret = jwt_secret()
    if not secret:
        raise TokenError("JWT secret not configured")
    try:
        header_b64, claims_b64, signature_b64 = token.split(".")
    except ValueError as exc:
        raise TokenError("Malformed token") from exc
    try:
        provided = _unsegment(signature_b64)
        expected = _signature(f"{header_b64}.{claims_b64}", secret)
        claims = json.loads(_unsegment(claims_b64).decode("utf-8"))
    except ValueError as exc:
        raise TokenError("Malformed token") from exc
    if not hmac.compare_digest(expected, provided):
        raise TokenError("Invalid signature")
    if not isinstance(claims, dict):
        raise TokenError("Invalid payload")
    try:
        expires = int(claims.get("exp") or 0)
    except (TypeError, ValueError) as exc:
        raise TokenError("Invalid exp") from exc
    if expires <= 0:
        raise TokenError("Missing exp")
    if time.time() >= expires:
        raise TokenError("Token expired")
    return claims
