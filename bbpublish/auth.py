"""
Credential resolution for Bitbucket Server.

A credential is either an HTTP access token or a username/password pair;
``authorization_header`` is the only place either one is turned into an
``Authorization`` header value.
"""

import base64
from dataclasses import dataclass

from bbpublish.config import IntegrationConfig
from bbpublish.exceptions import MissingCredentials


@dataclass(frozen=True)
class TokenCredential:
    """HTTP access token (or personal access token)."""

    token: str

    def __repr__(self) -> str:
        return "TokenCredential(token='[REDACTED]')"


@dataclass(frozen=True)
class BasicCredential:
    """Username and password for HTTP basic auth."""

    username: str
    password: str

    def __repr__(self) -> str:
        return f"BasicCredential(username={self.username!r}, password='[REDACTED]')"


Credential = TokenCredential | BasicCredential


@dataclass(frozen=True)
class AuthContext:
    """Resolved authorization for one invocation."""

    authorization: str
    credential: Credential

    def __repr__(self) -> str:
        return f"AuthContext(authorization='[REDACTED]', credential={self.credential!r})"


def authorization_header(credential: Credential) -> str:
    """
    Build the ``Authorization`` header value for a credential.

    Raises:
        TypeError: If ``credential`` is not one of the supported variants
    """
    if isinstance(credential, TokenCredential):
        return f"Bearer {credential.token}"
    if isinstance(credential, BasicCredential):
        raw = f"{credential.username}:{credential.password}".encode()
        return f"Basic {base64.b64encode(raw).decode('ascii')}"
    raise TypeError(f"Unsupported credential type: {type(credential).__name__}")


def resolve_auth(config: IntegrationConfig, token: str | None = None) -> AuthContext:
    """
    Resolve the credential to use against ``config.host``.

    A caller-supplied ``token`` takes precedence over the configured token.
    Without any token, the configured username/password pair is used.

    Args:
        config: Integration settings for the target host
        token: Optional override token

    Returns:
        AuthContext with a non-empty authorization value

    Raises:
        MissingCredentials: If neither a token nor a username/password pair
            is available
    """
    effective_token = token or config.token

    credential: Credential
    if effective_token:
        credential = TokenCredential(token=effective_token)
    elif config.username and config.password:
        credential = BasicCredential(username=config.username, password=config.password)
    else:
        raise MissingCredentials(
            f"Authorization has not been provided for {config.host}. Please add "
            "either (a) a token or (b) username + password to the integration config."
        )

    return AuthContext(authorization=authorization_header(credential), credential=credential)
