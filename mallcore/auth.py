"""Sign-in and user lookup through an OAuth provider, plus JWT key helpers."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Any, Protocol

from cryptography import x509
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPublicKey

logger = logging.getLogger(__name__)

AUTH_WHITE_LIST = ("/api.auth.v1.AuthService/Signin",)


class AuthError(Exception):
    """Raised when sign-in or token handling fails."""


@dataclass
class SigninRequest:
    code: str = ""
    state: str = ""


@dataclass
class SigninReply:
    state: str = ""
    data: str = ""


@dataclass
class GetUserInfoRequest:
    authorization: str = ""


@dataclass
class User:
    owner: str = ""
    type: str = ""
    name: str = ""
    id: str = ""
    avatar: str = ""
    email: str = ""


@dataclass
class GetUserInfoReply:
    state: str = ""
    data: User = field(default_factory=User)


class OAuthClient(Protocol):
    def get_oauth_token(self, code: str, state: str) -> Any: ...

    def parse_jwt_token(self, token: str) -> Any: ...


class AuthRepository:
    """Talks to the OAuth provider on behalf of the auth use case."""

    def __init__(self, oauth_client: OAuthClient) -> None:
        self._client = oauth_client

    def signin(self, req: SigninRequest) -> SigninReply:
        try:
            token = self._client.get_oauth_token(req.code, req.state)
        except Exception as exc:
            logger.error("GetOAuthToken() error %s", exc)
            raise AuthError(f"GetOAuthToken() error:{exc}") from exc
        logger.debug("GetOAuthToken() token %r", token)
        return SigninReply(state="ok", data=token.access_token)

    def get_user_info(self, req: GetUserInfoRequest) -> GetUserInfoReply:
        try:
            claims = self._client.parse_jwt_token(req.authorization)
        except Exception as exc:
            raise AuthError("ParseJwtToken() error") from exc
        user = User(
            owner=claims.owner,
            type=claims.type,
            name=claims.name,
            id=claims.id,
            avatar=claims.avatar,
            email=claims.email,
        )
        return GetUserInfoReply(state="ok", data=user)


class AuthUsecase:
    """Business entry points for authentication."""

    def __init__(self, repo: AuthRepository) -> None:
        self._repo = repo

    def signin(self, req: SigninRequest) -> SigninReply:
        logger.info("Signin request: %r", req)
        return self._repo.signin(req)

    def get_user_info(self, req: GetUserInfoRequest) -> GetUserInfoReply:
        logger.info("GetUserInfo request: %r", req)
        return self._repo.get_user_info(req)


def new_white_list_matcher(operations: Iterable[str] = AUTH_WHITE_LIST) -> Callable[[str], bool]:
    """Return a predicate telling whether an operation requires JWT auth."""
    white_list = frozenset(operations)

    def matches(operation: str) -> bool:
        return operation not in white_list

    return matches


def parse_rsa_public_key_from_pem(pem_bytes: bytes | str) -> RSAPublicKey:
    """Load an RSA public key from a PEM public key or certificate."""
    data = pem_bytes.encode() if isinstance(pem_bytes, str) else bytes(pem_bytes)
    try:
        key = serialization.load_pem_public_key(data)
    except (ValueError, UnsupportedAlgorithm):
        try:
            key = x509.load_pem_x509_certificate(data).public_key()
        except (ValueError, UnsupportedAlgorithm) as exc:
            raise ValueError(
                "failed to parse RSA public key: "
                "invalid key: Key must be a PEM encoded PKCS1 or PKCS8 key"
            ) from exc
    if not isinstance(key, RSAPublicKey):
        raise ValueError(
            "failed to parse RSA public key: key is not a valid RSA public key"
        )
    return key


def init_jwt_key(certificate: bytes | str) -> RSAPublicKey:
    """Load the configured JWT verification key, failing loudly if invalid."""
    try:
        return parse_rsa_public_key_from_pem(certificate)
    except ValueError as exc:
        raise AuthError("failed to parse public key") from exc