"""
Auth provider integration: ID token verification and password reset email.

Accounts themselves are created and owned by Firebase Auth; nothing about a
session is stored locally.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional, Protocol

import requests
from firebase_admin import auth as firebase_auth

from fanslink.errors import BackendError, InvalidTokenError

logger = logging.getLogger(__name__)

SEND_OOB_CODE_URL = "https://identitytoolkit.googleapis.com/v1/accounts:sendOobCode"


class AuthProvider(Protocol):
    def verify_token(self, token: str) -> str:
        """Return the uid for a valid ID token or raise InvalidTokenError."""
        ...

    def send_password_reset(self, email: str) -> None:
        ...


@dataclass
class InMemoryAuthProvider:
    """Static token table for local runs and tests."""

    tokens: dict = field(default_factory=dict)
    password_resets: list = field(default_factory=list)

    def verify_token(self, token: str) -> str:
        uid = self.tokens.get(token)
        if not uid:
            raise InvalidTokenError("Unknown token")
        return uid

    def send_password_reset(self, email: str) -> None:
        self.password_resets.append(email)


@dataclass
class FirebaseAuthProvider:
    web_api_key: Optional[str] = None
    timeout: float = 30

    def verify_token(self, token: str) -> str:
        try:
            decoded = firebase_auth.verify_id_token(token)
        except (ValueError, firebase_auth.InvalidIdTokenError) as e:
            raise InvalidTokenError(str(e)) from e
        except firebase_auth.CertificateFetchError as e:
            raise BackendError("Could not fetch token signing certificates") from e
        return decoded["uid"]

    def send_password_reset(self, email: str) -> None:
        """
        Ask Firebase Auth to email a password reset link. The Admin SDK can
        only generate the link, so this goes through the Identity Toolkit
        REST endpoint the client SDK uses.
        """
        if not self.web_api_key:
            raise BackendError("FIREBASE_WEB_API_KEY is not configured")
        try:
            response = requests.post(
                SEND_OOB_CODE_URL,
                params={"key": self.web_api_key},
                json={"requestType": "PASSWORD_RESET", "email": email},
                timeout=self.timeout,
            )
            response.raise_for_status()
        except requests.RequestException as e:
            logger.error("Error sending password reset email: %s", e)
            raise BackendError("Password reset request failed") from e
        logger.info("Password reset email sent.")
