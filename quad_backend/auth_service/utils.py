"""
Shared authentication helpers.
Provides token creation and verification, request authentication,
and password hashing.
"""

import hashlib
import hmac
import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple

import jwt
from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError
from flask import Request, Response
from jwt.utils import base64url_encode

from quad_backend.config import LEGACY_PASSWORD_SALT
from quad_backend.errors import ExpiredToken, MalformedToken, TokenError
from quad_backend.gateway.bindings import get_bindings
from quad_backend.gateway.dispatch import error_response

TOKEN_HEADER = {"alg": "HS256", "typ": "JWT"}
TOKEN_EXPIRATION_MINUTES = 1440  # 24 hours

# Tokens issued without a secret carry this constant in the signature slot.
PLACEHOLDER_SIGNATURE = base64url_encode(b"thequadsignature").decode("ascii")

ARGON2_PREFIX = "$argon2"

ph = PasswordHasher()


@dataclass
class AuthResult:
    is_authenticated: bool
    user_id: Optional[int] = None
    email: Optional[str] = None
    token: Optional[str] = None


# --- PASSWORDS ---
def hash_password(password: str, salt: str = LEGACY_PASSWORD_SALT) -> str:
    """
    Hash a password with a single SHA-256 pass over password + salt.

    The salt is one global constant, so equal passwords give equal hashes.
    Kept byte-compatible with hashes already stored by earlier deployments.

    Returns:
        str: Lowercase hex digest.
    """
    return hashlib.sha256((password + salt).encode("utf-8")).hexdigest()


def make_password_hash(password: str, scheme: str = "legacy", salt: str = LEGACY_PASSWORD_SALT) -> str:
    """
    Hash a password for storage using the configured scheme ("legacy" or "argon2").
    """
    if scheme == "argon2":
        return ph.hash(password)
    return hash_password(password, salt)


def verify_password(password: str, hashed: Optional[str], salt: str = LEGACY_PASSWORD_SALT) -> bool:
    """
    Check a password against a stored hash.

    Stored argon2 hashes are verified with argon2; anything else is treated
    as a legacy SHA-256 digest and recomputed.
    """
    if not hashed:
        return False

    if hashed.startswith(ARGON2_PREFIX):
        try:
            return ph.verify(hashed, password)
        except (VerificationError, InvalidHashError):
            return False

    return hmac.compare_digest(hash_password(password, salt).encode("utf-8"), hashed.encode("utf-8"))


# --- TOKENS ---
def _encode_segment(data: Dict[str, Any]) -> str:
    raw = json.dumps(data, separators=(",", ":")).encode("utf-8")
    return base64url_encode(raw).decode("ascii")


def generate_token(
    payload: Dict[str, Any],
    secret: Optional[str] = None,
    expiration_minutes: int = TOKEN_EXPIRATION_MINUTES,
) -> str:
    """
    Issue a bearer token for the given claims.

    Args:
        payload (dict): Caller claims (e.g. userId, email).
        secret (str, optional): HS256 key. Without one the signature slot
            holds the fixed placeholder and nothing is signed.
        expiration_minutes (int): Lifetime added to the issue time.

    Returns:
        str: base64url(header).base64url(claims).signature
    """
    now = int(datetime.now(timezone.utc).timestamp())
    claims = {**payload, "iat": now, "exp": now + expiration_minutes * 60}

    if secret:
        return jwt.encode(claims, secret, algorithm="HS256")

    return ".".join([_encode_segment(TOKEN_HEADER), _encode_segment(claims), PLACEHOLDER_SIGNATURE])


def verify_token(token: str, secret: Optional[str] = None) -> Dict[str, Any]:
    """
    Decode a bearer token and check its expiry.

    Without a secret the signature segment is not checked at all.

    Returns:
        dict: The token claims, including iat and exp.

    Raises:
        MalformedToken: Not exactly three segments, undecodable, or (with a
            secret) a bad signature.
        ExpiredToken: exp is in the past.
    """
    if not isinstance(token, str) or token.count(".") != 2:
        raise MalformedToken("Invalid token: malformed token")

    try:
        if secret:
            payload = jwt.decode(token, secret, algorithms=["HS256"], options={"verify_exp": False})
        else:
            payload = jwt.decode(token, options={"verify_signature": False, "verify_exp": False})
    except jwt.InvalidTokenError as e:
        raise MalformedToken(f"Invalid token: {e}") from e

    # A token stays valid through its exp second
    exp = payload.get("exp")
    if exp is not None:
        try:
            expires_at = int(exp)
        except (TypeError, ValueError) as e:
            raise MalformedToken("Invalid token: exp must be a number") from e
        if expires_at < int(datetime.now(timezone.utc).timestamp()):
            raise ExpiredToken("Invalid token: token has expired")

    return payload


# --- REQUEST AUTHENTICATION ---
def authenticate_request(req: Request, secret: Optional[str] = None) -> AuthResult:
    """
    Read the Authorization header and resolve the caller.

    A missing or malformed header, and any token failure, yield an
    unauthenticated result. Nothing is raised; callers check
    ``is_authenticated``.
    """
    auth = req.headers.get("Authorization", "")

    if not auth.startswith("Bearer "):
        return AuthResult(is_authenticated=False)

    token = auth.split(" ", 1)[1].strip()
    if not token:
        return AuthResult(is_authenticated=False)

    try:
        payload = verify_token(token, secret)
    except TokenError as e:
        logging.debug(f"[Auth] Rejected token: {e}")
        return AuthResult(is_authenticated=False, token=token)

    user_id = payload.get("userId")
    return AuthResult(
        is_authenticated=user_id is not None,
        user_id=user_id,
        email=payload.get("email"),
        token=token,
    )


def require_user(req: Request, secret: Optional[str] = None) -> Tuple[Optional[AuthResult], Optional[Response]]:
    """
    Authenticate the request for a handler that needs a user.

    Returns:
        tuple: (auth, error_response)
               If authenticated, error_response is None.
               Otherwise auth is None and error_response is a 401.
    """
    auth = authenticate_request(req, secret)
    if not auth.is_authenticated:
        return None, error_response("Unauthorized", 401)
    return auth, None


# --- APP-BOUND HELPERS ---
def issue_token(payload: Dict[str, Any]) -> str:
    """
    Issue a token with the running app's secret and lifetime.
    """
    settings = get_bindings().settings
    return generate_token(payload, settings.jwt_secret, settings.token_expiration_minutes)


def current_user(req: Request) -> Tuple[Optional[AuthResult], Optional[Response]]:
    """
    require_user with the running app's secret.
    """
    return require_user(req, get_bindings().settings.jwt_secret)


def resolve_user_id(req: Request) -> Optional[Any]:
    """
    The caller's id from the token, or the ?userID= query parameter.
    """
    auth = authenticate_request(req, get_bindings().settings.jwt_secret)
    if auth.is_authenticated:
        return auth.user_id
    return req.args.get("userID") or None
