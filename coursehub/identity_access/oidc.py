"""
Minimal Google OAuth 2.0 / OIDC client.

Why: Keep framework independent identity-provider plumbing in a separate
module. The web adapter calls into this client to build the authorization URL,
exchange the authorization code and fetch the verified profile.

Security: The caller stores the `state` value server-side and checks it on the
callback; PKCE (S256) parameters are sent as well. The provider is treated as
a black box: whatever profile it returns for a valid code is trusted.
"""

from __future__ import annotations

import base64
import hashlib
import os
from dataclasses import dataclass
from typing import Dict, Optional
from urllib.parse import urlencode

# Small indirection to ease monkeypatching in tests
import requests as http

GOOGLE_AUTH_ENDPOINT = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_ENDPOINT = "https://oauth2.googleapis.com/token"
GOOGLE_USERINFO_ENDPOINT = "https://openidconnect.googleapis.com/v1/userinfo"


def http_post(url: str, data: Dict[str, str], headers: Dict[str, str]):
    return http.post(url, data=data, headers=headers, timeout=10)


def http_get(url: str, headers: Dict[str, str]):
    return http.get(url, headers=headers, timeout=10)


class OAuthError(Exception):
    def __init__(self, code: str):
        super().__init__(code)
        self.code = code


@dataclass(frozen=True)
class GoogleOAuthConfig:
    client_id: str
    client_secret: str
    redirect_uri: str  # e.g., http://localhost:5000/api/users/google/callback

    @property
    def configured(self) -> bool:
        return bool(self.client_id and self.client_secret and self.redirect_uri)


@dataclass(frozen=True)
class GoogleProfile:
    google_id: str
    email: Optional[str]
    name: str
    avatar: Optional[str]
    email_verified: bool


class GoogleOAuthClient:
    def __init__(self, config: GoogleOAuthConfig):
        self.cfg = config

    @staticmethod
    def generate_code_verifier(length: int = 64) -> str:
        """Generate a high-entropy URL-safe code_verifier (RFC 7636: 43..128 chars)."""
        return base64.urlsafe_b64encode(os.urandom(length)).decode("ascii").rstrip("=")

    @staticmethod
    def code_challenge_s256(code_verifier: str) -> str:
        digest = hashlib.sha256(code_verifier.encode("ascii")).digest()
        return base64.urlsafe_b64encode(digest).decode("ascii").rstrip("=")

    def build_authorization_url(self, *, state: str, code_challenge: str) -> str:
        params = {
            "response_type": "code",
            "client_id": self.cfg.client_id,
            "redirect_uri": self.cfg.redirect_uri,
            "scope": "openid email profile",
            "state": state,
            "code_challenge": code_challenge,
            "code_challenge_method": "S256",
            "prompt": "select_account",
        }
        return f"{GOOGLE_AUTH_ENDPOINT}?{urlencode(params)}"

    def exchange_code_for_tokens(self, *, code: str, code_verifier: str) -> Dict[str, str]:
        """Exchange authorization code for tokens; raises OAuthError on failure."""
        data = {
            "grant_type": "authorization_code",
            "code": code,
            "client_id": self.cfg.client_id,
            "client_secret": self.cfg.client_secret,
            "redirect_uri": self.cfg.redirect_uri,
            "code_verifier": code_verifier,
        }
        headers = {"Content-Type": "application/x-www-form-urlencoded"}
        try:
            resp = http_post(GOOGLE_TOKEN_ENDPOINT, data=data, headers=headers)
        except http.RequestException as exc:
            raise OAuthError("token_exchange_failed") from exc
        if resp.status_code != 200:
            raise OAuthError("token_exchange_failed")
        return resp.json()

    def fetch_profile(self, *, access_token: str) -> GoogleProfile:
        try:
            resp = http_get(GOOGLE_USERINFO_ENDPOINT, headers={"Authorization": f"Bearer {access_token}"})
        except http.RequestException as exc:
            raise OAuthError("userinfo_failed") from exc
        if resp.status_code != 200:
            raise OAuthError("userinfo_failed")
        try:
            info = resp.json()
        except ValueError as exc:
            raise OAuthError("userinfo_invalid") from exc
        sub = str(info.get("sub") or "")
        if not sub:
            raise OAuthError("userinfo_invalid")
        email = info.get("email") or None
        return GoogleProfile(
            google_id=sub,
            email=email,
            name=str(info.get("name") or (email or "").split("@")[0] or "Student"),
            avatar=info.get("picture") or None,
            email_verified=bool(info.get("email_verified", True)),
        )


__all__ = ["GoogleOAuthClient", "GoogleOAuthConfig", "GoogleProfile", "OAuthError"]
