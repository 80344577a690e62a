"""
Session token issuing and verification for the identity_access bounded context.

Why: Keep cryptographic handling of session tokens outside the web adapter so
we can unit test it independently of FastAPI.

Security: Tokens are HS256 JWTs signed with a server-held secret. They carry
only the principal id, a type tag (`admin` | `user`) and temporal claims; no
confidentiality is promised. Expiry is checked against an injectable clock so
tests can move time without sleeping.
"""
from __future__ import annotations

import re
import time
from dataclasses import dataclass
from typing import Callable, Dict

from jose import jwt
from jose.exceptions import JOSEError

from .domain import PRINCIPAL_TYPES
from .errors import TokenExpired, TokenInvalid

ALGORITHM = "HS256"
DEFAULT_TTL_SECONDS = 7 * 24 * 3600
MAX_CLOCK_SKEW_SECONDS = 5  # Allow minimal skew between servers

_DURATION_RE = re.compile(r"^\s*(\d+)\s*([smhd]?)\s*$")
_UNIT_SECONDS = {"": 1, "s": 1, "m": 60, "h": 3600, "d": 86400}


def parse_duration(value: str | int | None, default: int = DEFAULT_TTL_SECONDS) -> int:
    """Parse lifetimes like "7d", "12h", "30m", "45s" or plain seconds."""
    if value is None or value == "":
        return default
    if isinstance(value, int):
        return value
    m = _DURATION_RE.match(str(value).lower())
    if not m:
        raise ValueError(f"invalid duration: {value!r}")
    return int(m.group(1)) * _UNIT_SECONDS[m.group(2)]


@dataclass(frozen=True)
class TokenClaims:
    principal_id: str
    principal_type: str
    issued_at: int
    expires_at: int


class TokenIssuer:
    """Mint and verify signed, time-limited session tokens."""

    def __init__(
        self,
        secret: str,
        *,
        admin_ttl_seconds: int = DEFAULT_TTL_SECONDS,
        user_ttl_seconds: int = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if not secret:
            raise ValueError("token secret must not be empty")
        self._secret = secret
        self._ttl: Dict[str, int] = {"admin": int(admin_ttl_seconds), "user": int(user_ttl_seconds)}
        self._clock = clock

    def issue(self, principal_id: str, principal_type: str) -> str:
        if principal_type not in PRINCIPAL_TYPES:
            raise ValueError(f"unknown principal type: {principal_type!r}")
        now = int(self._clock())
        claims = {
            "id": str(principal_id),
            "type": principal_type,
            "iat": now,
            "exp": now + self._ttl[principal_type],
        }
        return jwt.encode(claims, self._secret, algorithm=ALGORITHM)

    def verify(self, token: str) -> TokenClaims:
        """Validate signature and expiry and return the decoded claims.

        Raises
        ------
        TokenExpired:
            When `exp` lies in the past (beyond the allowed clock skew).
        TokenInvalid:
            When the signature, algorithm, structure or type tag is wrong.
        """
        try:
            claims = jwt.decode(
                token,
                self._secret,
                algorithms=[ALGORITHM],
                options={"verify_exp": False, "verify_iat": False, "verify_nbf": False},
            )
        except JOSEError as exc:
            raise TokenInvalid() from exc

        principal_id = claims.get("id")
        principal_type = claims.get("type")
        exp = claims.get("exp")
        iat = claims.get("iat")
        if not isinstance(principal_id, str) or not principal_id:
            raise TokenInvalid()
        if principal_type not in PRINCIPAL_TYPES:
            raise TokenInvalid()
        if not isinstance(exp, (int, float)):
            raise TokenInvalid()
        if exp + MAX_CLOCK_SKEW_SECONDS < self._clock():
            raise TokenExpired()
        return TokenClaims(
            principal_id=principal_id,
            principal_type=principal_type,
            issued_at=int(iat) if isinstance(iat, (int, float)) else 0,
            expires_at=int(exp),
        )


__all__ = ["TokenIssuer", "TokenClaims", "parse_duration", "ALGORITHM"]
