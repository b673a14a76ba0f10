"""
Microsoft identity platform sign-in.

Runs the authorization-code flow with PKCE through MSAL's public client
and validates the resulting ID tokens against the Microsoft JWKS.
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional

import jwt
import msal
from jwt import PyJWKClient

from hr_mobile.config import Settings, get_settings

logger = logging.getLogger(__name__)


class AuthenticationError(Exception):
    """Raised when Microsoft sign-in cannot be completed."""


@dataclass
class UserIdentity:
    """Represents a user signed in with a Microsoft account."""

    user_id: str  # Object ID
    email: str
    display_name: str
    tenant_id: str
    upn: str

    def __str__(self) -> str:
        return f"{self.display_name} ({self.email})"


def identity_from_claims(claims: dict[str, Any]) -> UserIdentity:
    """Build a UserIdentity from ID token claims."""
    return UserIdentity(
        user_id=claims.get("oid", claims.get("sub", "")),
        email=claims.get("preferred_username", claims.get("email", "")),
        display_name=claims.get("name", "Unknown User"),
        tenant_id=claims.get("tid", ""),
        upn=claims.get("upn", claims.get("preferred_username", "")),
    )


class MicrosoftLogin:
    """
    Authorization-code flow with PKCE for the mobile app registration.

    `openid`, `profile` and `offline_access` are added by MSAL itself,
    so only the Graph scope is requested explicitly.
    """

    SCOPES = ["User.Read"]
    JWKS_URL = "https://login.microsoftonline.com/common/discovery/v2.0/keys"
    ISSUER_TEMPLATE = "https://login.microsoftonline.com/{tenant_id}/v2.0"

    def __init__(
        self,
        settings: Optional[Settings] = None,
        app: Optional[msal.PublicClientApplication] = None,
        jwk_client: Optional[PyJWKClient] = None,
    ):
        self.settings = settings or get_settings()
        self._app = app
        self._jwk_client = jwk_client

    @property
    def app(self) -> msal.PublicClientApplication:
        """Get or create the MSAL public client."""
        if self._app is None:
            if not self.settings.microsoft_client_id:
                raise AuthenticationError("Microsoft client ID is not configured")
            self._app = msal.PublicClientApplication(
                self.settings.microsoft_client_id,
                authority=self.settings.microsoft_authority,
            )
        return self._app

    @property
    def jwk_client(self) -> PyJWKClient:
        if self._jwk_client is None:
            self._jwk_client = PyJWKClient(self.JWKS_URL)
        return self._jwk_client

    def start(self) -> dict[str, Any]:
        """
        Begin sign-in.

        Returns:
            The MSAL flow; send the user to `flow["auth_uri"]` and keep the
            flow for `complete()`
        """
        flow = self.app.initiate_auth_code_flow(
            self.SCOPES,
            redirect_uri=self.settings.microsoft_redirect_uri,
            prompt="select_account",
        )
        if "auth_uri" not in flow:
            raise AuthenticationError(flow.get("error_description") or "Could not start sign-in")
        return flow

    def complete(self, flow: dict[str, Any], auth_response: dict[str, Any]) -> dict[str, Any]:
        """
        Redeem the redirect parameters for tokens.

        Args:
            flow: The flow returned by `start()`
            auth_response: Query parameters received on the redirect URI

        Raises:
            AuthenticationError: If the code exchange fails
        """
        try:
            result = self.app.acquire_token_by_auth_code_flow(flow, auth_response)
        except ValueError as e:
            # State mismatch or a reused flow
            raise AuthenticationError(f"Invalid sign-in response: {e}") from e

        if "error" in result:
            logger.warning(f"Microsoft sign-in failed: {result.get('error')}")
            raise AuthenticationError(result.get("error_description") or result["error"])

        claims = result.get("id_token_claims") or {}
        logger.info(f"Microsoft sign-in completed for {claims.get('preferred_username', '')}")
        return result

    def validate_id_token(self, token: str) -> Optional[UserIdentity]:
        """
        Validate an ID token and extract the user identity.

        The issuer must be the v2.0 issuer of the tenant named in the
        token, since the `common` authority serves every tenant.

        Returns:
            UserIdentity if the token is valid, None otherwise
        """
        try:
            signing_key = self.jwk_client.get_signing_key_from_jwt(token)
            payload = jwt.decode(
                token,
                signing_key.key,
                algorithms=["RS256"],
                audience=self.settings.microsoft_client_id,
                options={"require": ["exp", "iss", "aud"]},
            )
        except jwt.ExpiredSignatureError:
            logger.warning("Token has expired")
            return None
        except jwt.InvalidAudienceError:
            logger.warning("Token has invalid audience")
            return None
        except jwt.PyJWTError as e:
            logger.error(f"Token validation failed: {e}")
            return None

        expected_issuer = self.ISSUER_TEMPLATE.format(tenant_id=payload.get("tid", ""))
        if payload.get("iss") != expected_issuer:
            logger.warning("Token has invalid issuer")
            return None

        identity = identity_from_claims(payload)
        logger.info(f"Successfully validated token for user: {identity.email}")
        return identity
