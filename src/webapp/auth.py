from __future__ import annotations

import base64
import hashlib
import hmac
import json
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from config import AUTH_JWT_SECRET, AUTH_AUDIENCE, AUTH_LEEWAY_SECONDS


@dataclass(frozen=True)
class Identity:
    """Verified caller, passed explicitly into every operation that needs one."""
    user_id: str
    email: Optional[str] = None


class AccessTokenError(Exception):
    """Base error for access token validation issues."""


class AccessTokenSignatureError(AccessTokenError):
    """Raised when the token signature is invalid or missing."""


class AccessTokenExpiredError(AccessTokenError):
    """Raised when exp is in the past."""


def _b64url_decode(segment: str) -> bytes:
    padding = "=" * (-len(segment) % 4)
    return base64.urlsafe_b64decode(segment + padding)


def validate_access_token(
        token: str,
        secret: str = AUTH_JWT_SECRET,
        audience: Optional[str] = AUTH_AUDIENCE,
        leeway_seconds: int = AUTH_LEEWAY_SECONDS,
        now: Optional[float] = None,
) -> Dict[str, Any]:
    """
    Validate an HS256 access token issued by the auth provider.

    :param token: Compact JWT ("header.payload.signature").
    :param secret: Shared signing secret of the auth provider.
    :param audience: Expected "aud" claim (None to skip the check).
    :param leeway_seconds: Clock skew tolerated on "exp".
    :return: Decoded claims.
    :raises AccessTokenError: On malformed, forged or expired tokens.
    """
    if not secret:
        raise AccessTokenSignatureError("Auth secret is not configured.")

    # 1. Split and decode header/payload
    try:
        header_b64, payload_b64, signature_b64 = token.split(".")
        header = json.loads(_b64url_decode(header_b64))
        claims = json.loads(_b64url_decode(payload_b64))
        received_sig = _b64url_decode(signature_b64)
    except ValueError as e:
        raise AccessTokenError(f"Malformed token: {e}")

    if not isinstance(header, dict) or header.get("alg") != "HS256":
        raise AccessTokenSignatureError("Unsupported token algorithm.")
    if not isinstance(claims, dict):
        raise AccessTokenError("Token payload is not an object.")

    # 2. Signature over "header.payload"
    expected_sig = hmac.new(
        key=secret.encode("utf-8"),
        msg=f"{header_b64}.{payload_b64}".encode("ascii"),
        digestmod=hashlib.sha256,
    ).digest()
    if not hmac.compare_digest(expected_sig, received_sig):
        raise AccessTokenSignatureError("Token signature mismatch.")

    # 3. Expiry and audience
    exp = claims.get("exp")
    if not isinstance(exp, (int, float)):
        raise AccessTokenError("Token has no exp claim.")
    now = time.time() if now is None else now
    if now > exp + leeway_seconds:
        raise AccessTokenExpiredError("Token has expired.")

    if audience:
        aud = claims.get("aud")
        audiences = aud if isinstance(aud, list) else [aud]
        if audience not in audiences:
            raise AccessTokenError("Token audience mismatch.")

    if not isinstance(claims.get("sub"), str) or not claims["sub"]:
        raise AccessTokenError("Token has no subject.")

    return claims


bearer_scheme = HTTPBearer(auto_error=False)


async def get_identity(credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)) -> Identity:
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise HTTPException(status_code=401, detail="Missing bearer token")
    try:
        claims = validate_access_token(credentials.credentials)
    except AccessTokenError as e:
        raise HTTPException(status_code=401, detail=str(e))
    return Identity(user_id=claims["sub"], email=claims.get("email"))
