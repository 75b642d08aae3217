"""
Supabase Auth HTTP client.

Supabase owns identities and credentials (creation, sign-in, JWT issuing).
Django only stores the profile that references the identity id.
"""

import jwt
import requests
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Optional, Tuple
from uuid import UUID

from django.conf import settings
from django.utils.dateparse import parse_datetime

from .errors import IdentityConflict, InvalidSignup, RegistrationError, StoreUnavailable

logger = logging.getLogger(__name__)

DUPLICATE_ERROR_CODES = ("email_exists", "user_already_exists")

# urllib3 rejects a zero timeout.
MIN_REQUEST_TIMEOUT = 0.05


@dataclass(frozen=True)
class Identity:
    """An authentication principal as Supabase reports it."""

    id: UUID
    email: str
    created_at: Optional[datetime] = None

    @classmethod
    def from_payload(cls, data: Dict) -> "Identity":
        created_at = data.get("created_at")
        return cls(
            id=UUID(str(data["id"])),
            email=data.get("email", ""),
            created_at=parse_datetime(created_at) if created_at else None,
        )


class SupabaseAuth:
    """Thin wrapper around the Supabase Auth REST API."""

    def __init__(self):
        self.url = settings.SUPABASE_URL.rstrip("/")
        self.anon_key = settings.SUPABASE_ANON_KEY
        self.service_key = settings.SUPABASE_SERVICE_KEY
        self.jwt_secret = settings.SUPABASE_JWT_SECRET
        self.timeout = settings.SUPABASE_TIMEOUT
        self.auth_url = f"{self.url}/auth/v1"

    def _service_headers(self) -> Dict:
        return {
            "Authorization": f"Bearer {self.service_key}",
            "apikey": self.anon_key,
            "Content-Type": "application/json",
        }

    # ------------------------------------------------------------------ #
    # JWT verification                                                      #
    # ------------------------------------------------------------------ #

    def verify_jwt(self, token: str) -> Tuple[bool, Dict]:
        """
        Check a Supabase access token. Returns (is_valid, claims or {"error": ...}).

        HS256 tokens are checked against SUPABASE_JWT_SECRET without a network
        call. Any other token is settled by Supabase's /user endpoint.
        """
        if self.jwt_secret and self._token_algorithm(token) == "HS256":
            try:
                return True, jwt.decode(token, self.jwt_secret, algorithms=["HS256"], audience="authenticated")
            except jwt.ExpiredSignatureError:
                return False, {"error": "Token has expired"}
            except jwt.InvalidTokenError as exc:
                logger.debug(f"Local token check failed ({exc}); asking Supabase")

        return self._verify_via_api(token)

    @staticmethod
    def _token_algorithm(token: str) -> Optional[str]:
        try:
            return jwt.get_unverified_header(token).get("alg")
        except jwt.InvalidTokenError:
            return None

    def _verify_via_api(self, token: str) -> Tuple[bool, Dict]:
        try:
            response = requests.get(
                f"{self.auth_url}/user",
                headers={"Authorization": f"Bearer {token}", "apikey": self.anon_key},
                timeout=self.timeout,
            )
        except requests.exceptions.Timeout:
            return False, {"error": "Supabase verification timed out"}
        except requests.exceptions.RequestException as exc:
            logger.error(f"Supabase token verification failed: {exc}")
            return False, {"error": "Supabase request failed"}

        if response.status_code == 200:
            return True, self._json(response)
        if response.status_code == 401:
            return False, {"error": "Token invalid"}
        return False, {"error": f"Verification failed ({response.status_code})"}

    # ------------------------------------------------------------------ #
    # Identity operations                                                   #
    # ------------------------------------------------------------------ #

    def create_identity(
        self, email: str, password: str, user_metadata: Dict = None, timeout: Optional[float] = None
    ) -> Identity:
        """
        Create an auth user via the service role (no confirmation email).

        Raises:
            IdentityConflict: the email already has an identity.
            InvalidSignup: Supabase rejected the password.
            StoreUnavailable: Supabase could not be reached or failed.
        """
        body = {"email": email, "password": password, "email_confirm": True}
        if user_metadata:
            body["user_metadata"] = user_metadata

        try:
            response = requests.post(
                f"{self.auth_url}/admin/users",
                headers=self._service_headers(),
                json=body,
                timeout=self._request_timeout(timeout),
            )
        except requests.exceptions.RequestException as exc:
            logger.error(f"Supabase create user request failed: {exc}")
            raise StoreUnavailable() from exc

        data = self._json(response)
        if response.status_code in (200, 201):
            return self._identity(data)

        error_code = data.get("error_code") or ""
        message = data.get("msg") or data.get("message") or data.get("error_description") or ""
        if error_code in DUPLICATE_ERROR_CODES or "already been registered" in message.lower():
            raise IdentityConflict()
        if error_code == "weak_password":
            raise InvalidSignup({"password": [message or "Password is too weak."]})
        if response.status_code >= 500 or response.status_code == 429:
            logger.error(f"Supabase create user failed ({response.status_code}): {message}")
            raise StoreUnavailable()

        logger.error(f"Supabase rejected user creation ({response.status_code}): {error_code} {message}")
        raise RegistrationError()

    def get_identity_by_id(self, identity_id, timeout: Optional[float] = None) -> Optional[Identity]:
        """
        Read an auth user by id. Returns None while the user is not visible.

        Raises:
            StoreUnavailable: Supabase could not be reached or failed.
        """
        try:
            response = requests.get(
                f"{self.auth_url}/admin/users/{identity_id}",
                headers=self._service_headers(),
                timeout=self._request_timeout(timeout),
            )
        except requests.exceptions.RequestException as exc:
            raise StoreUnavailable() from exc

        if response.status_code == 200:
            return self._identity(self._json(response))
        if response.status_code == 404:
            return None
        logger.error(f"Supabase user lookup failed ({response.status_code})")
        raise StoreUnavailable()

    def _request_timeout(self, limit: Optional[float]) -> float:
        """The configured timeout, shortened to what is left of the caller's deadline."""
        if limit is None:
            return self.timeout
        return max(MIN_REQUEST_TIMEOUT, min(self.timeout, limit))

    @staticmethod
    def _identity(data: Dict) -> Identity:
        try:
            return Identity.from_payload(data)
        except (KeyError, TypeError, ValueError) as exc:
            logger.error(f"Supabase returned a malformed user payload: {exc!r}")
            raise StoreUnavailable() from exc

    @staticmethod
    def _json(response) -> Dict:
        if not response.text:
            return {}
        try:
            return response.json()
        except ValueError:
            return {}


# Module-level singleton
supabase_auth = SupabaseAuth()
