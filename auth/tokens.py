"""
auth/tokens.py -- Bearer token issuance, validation parameters, and password hashing.

Security design decisions:
  JWT: python-jose with HS512 (HMAC-SHA512). Tokens carry exactly one identity
       claim (sub = username) and an absolute expiry (exp). They are not stored
       server side and cannot be revoked; they simply stop validating at exp.

  Signing key: TOKEN_KEY is encoded as UTF-8 bytes and wrapped in a jose HMAC
       key. The same derivation feeds TokenService (signing) and
       TokenValidationParameters (verification), so the two can never disagree
       on key bytes. Keys shorter than 64 characters are rejected with
       TokenConfigurationError -- HS512 wants a key at least as long as its
       512-bit output, and signing with a weak key must never happen silently.

  Issuer/audience: not validated by default. The flags live on
       TokenValidationParameters so hardening is a config change.

  Passwords: bcrypt directly. The _DUMMY_HASH constant enables timing
       equalization in authenticate_user() so response time does not reveal
       whether a username exists.

Layer rule: no imports from api/ or web/.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

import bcrypt
from jose import JWTError, jwk, jwt
from jose.backends.base import Key
from jose.constants import ALGORITHMS

if TYPE_CHECKING:
    from auth.models import User
    from auth.store import UserStore

logger = logging.getLogger("datingapp.auth")

ALGORITHM = ALGORITHMS.HS512
MIN_TOKEN_KEY_LENGTH = 64
DEFAULT_EXPIRE_DAYS = 7


class TokenConfigurationError(ValueError):
    """Raised when the signing secret is missing or too short to use."""


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def derive_signing_key(token_key: str | None) -> Key:
    """Turn the TOKEN_KEY string into the symmetric HMAC-SHA512 key.

    Raises TokenConfigurationError for a missing key or one shorter than
    MIN_TOKEN_KEY_LENGTH characters.
    """
    if not token_key:
        raise TokenConfigurationError("TOKEN_KEY is not configured. Set TOKEN_KEY in your environment or .env file.")
    if len(token_key) < MIN_TOKEN_KEY_LENGTH:
        raise TokenConfigurationError(f"TOKEN_KEY must be at least {MIN_TOKEN_KEY_LENGTH} characters.")
    return jwk.construct(token_key.encode("utf-8"), algorithm=ALGORITHM)


# ---------------------------------------------------------------------------
# Issuer
# ---------------------------------------------------------------------------


class TokenService:
    """Mints signed, time-bounded bearer tokens for users.

    Stateless after construction: the signing key, lifetime and optional
    issuer/audience stamps are read-only, so one instance is shared by every
    request thread.

    Usage:
        service = TokenService(settings.token_key)
        token = service.create_token(user)   # "xxxxx.yyyyy.zzzzz"

    Args:
        token_key:   Shared secret, >= 64 characters.
        expire_days: Token lifetime measured from issuance.
        issuer:      Stamped as "iss" when set. Only useful when the validator
                     checks it.
        audience:    Stamped as "aud" when set.
        clock:       Returns the current aware UTC datetime. Tests pin it.
    """

    def __init__(
        self,
        token_key: str | None,
        expire_days: int = DEFAULT_EXPIRE_DAYS,
        issuer: str | None = None,
        audience: str | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._signing_key = derive_signing_key(token_key)
        self._lifetime = timedelta(days=expire_days)
        self._issuer = issuer or None
        self._audience = audience or None
        self._clock = clock or _utcnow

    def create_token(self, user: User) -> str:
        """Return the compact header.payload.signature token for user.

        The claim set holds the subject and the absolute expiry (Unix seconds).
        Two calls in the same second for the same user return identical
        strings.
        """
        if not user.username:
            raise ValueError("Cannot issue a token for a user without a username.")

        expires = self._clock() + self._lifetime
        claims: dict = {"sub": user.username, "exp": int(expires.timestamp())}
        if self._issuer:
            claims["iss"] = self._issuer
        if self._audience:
            claims["aud"] = self._audience
        return jwt.encode(claims, self._signing_key, algorithm=ALGORITHM)


# ---------------------------------------------------------------------------
# Validator configuration
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TokenValidationParameters:
    """How an inbound bearer token is checked before a request proceeds.

    Built once at startup by build_validation_parameters() and read-only for
    the process lifetime. decode_access_token() is the enforcement.
    """

    signing_key: Key
    algorithms: tuple[str, ...] = (ALGORITHM,)
    validate_issuer_signing_key: bool = True
    validate_lifetime: bool = True
    validate_issuer: bool = False
    valid_issuer: str | None = None
    validate_audience: bool = False
    valid_audience: str | None = None


def build_validation_parameters(
    token_key: str | None,
    validate_issuer: bool = False,
    valid_issuer: str | None = None,
    validate_audience: bool = False,
    valid_audience: str | None = None,
) -> TokenValidationParameters:
    """Declare the validation rule for the given secret.

    Must receive the same TOKEN_KEY as TokenService, or every token fails
    verification. Enabling an issuer/audience check without a value to check
    against is a configuration error.
    """
    if validate_issuer and not valid_issuer:
        raise TokenConfigurationError("VALIDATE_ISSUER is enabled but TOKEN_ISSUER is empty.")
    if validate_audience and not valid_audience:
        raise TokenConfigurationError("VALIDATE_AUDIENCE is enabled but TOKEN_AUDIENCE is empty.")
    return TokenValidationParameters(
        signing_key=derive_signing_key(token_key),
        validate_issuer=validate_issuer,
        valid_issuer=valid_issuer or None,
        validate_audience=validate_audience,
        valid_audience=valid_audience or None,
    )


def decode_access_token(
    token: str,
    params: TokenValidationParameters,
    now: datetime | None = None,
) -> dict | None:
    """Verify a bearer token. Returns the claims dict or None on any failure.

    Returning None (rather than raising) keeps the caller simple: any invalid
    token is treated as unauthenticated. The dependency layer turns None into
    401.

    Expiry is checked here rather than by jose so the boundary is exact: the
    token is dead from the exp second onwards, and `now` can be pinned.
    """
    options = {
        "verify_signature": params.validate_issuer_signing_key,
        "verify_exp": False,
        "verify_iss": params.validate_issuer,
        "verify_aud": params.validate_audience,
        "require_exp": params.validate_lifetime,
        "require_sub": True,
        "require_iss": params.validate_issuer,
        "require_aud": params.validate_audience,
    }
    try:
        claims = jwt.decode(
            token,
            params.signing_key,
            algorithms=list(params.algorithms),
            options=options,
            issuer=params.valid_issuer if params.validate_issuer else None,
            audience=params.valid_audience if params.validate_audience else None,
        )
    except JWTError as exc:
        logger.debug("Rejected bearer token: %s", exc)
        return None

    subject = claims.get("sub")
    if not isinstance(subject, str) or not subject:
        return None

    if params.validate_lifetime:
        exp = claims.get("exp")
        if not isinstance(exp, (int, float)) or isinstance(exp, bool):
            return None
        current = now or _utcnow()
        if current.timestamp() >= exp:
            logger.debug("Rejected expired bearer token for %s", claims.get("sub"))
            return None
    return claims


# ---------------------------------------------------------------------------
# Password hashing (bcrypt -- direct usage, no passlib wrapper)
# ---------------------------------------------------------------------------


def hash_password(plain: str) -> str:
    """Return a bcrypt hash of the given plaintext password.

    bcrypt accepts at most 72 bytes; RegisterRequest rejects longer passwords
    before they get here.
    """
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash."""
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        return False


# Computed once at module load so the first login attempt is not measurably
# slower than subsequent ones.
_DUMMY_HASH: str = hash_password("datingapp_timing_dummy")


def authenticate_user(store: UserStore, username: str, password: str) -> User | None:
    """Authenticate a username/password login with timing equalization.

    Always runs bcrypt whether or not the user exists, so response time does
    not reveal which usernames are registered.

    Returns the User on success, None on any failure.
    """
    user = store.get_by_username(username)
    if user is None or user.hashed_password is None:
        verify_password(password, _DUMMY_HASH)
        return None
    if not verify_password(password, user.hashed_password):
        return None
    if not user.is_active:
        return None
    return user
