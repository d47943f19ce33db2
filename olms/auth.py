import logging
from typing import NamedTuple, Optional

import jwt
from passlib.context import CryptContext

from . import config
from .utils import utcnow

logger = logging.getLogger(__name__)

# Use pbkdf2_sha256 as default to avoid bcrypt 72-byte limitation in some envs
pwd_context = CryptContext(schemes=["pbkdf2_sha256", "bcrypt"], deprecated="auto")

ALGORITHM = "HS256"
REQUIRED_CLAIMS = ("sub", "email", "role", "iat", "exp")


class TokenIdentity(NamedTuple):
    id: str
    email: str
    role: str


def create_access_token(user, expires_delta: Optional[int] = None, now=None) -> str:
    """Mint a signed token for ``user`` (anything with id, email and role)."""
    settings = config.get_settings()
    issued = int((now or utcnow()).timestamp())
    exp = issued + (expires_delta if expires_delta is not None else settings.token_ttl_seconds)
    payload = {
        "sub": str(user.id),
        "email": user.email,
        "role": getattr(user.role, "value", user.role),
        "iat": issued,
        "exp": exp,
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=ALGORITHM)


def verify_access_token(token: str) -> Optional[TokenIdentity]:
    """Return the identity embedded in ``token`` or None.

    Callers only see None; the reason is logged.
    """
    if not token:
        logger.warning("token rejected: empty token")
        return None
    try:
        payload = jwt.decode(
            token,
            config.get_settings().jwt_secret,
            algorithms=[ALGORITHM],
            options={"require": list(REQUIRED_CLAIMS)},
            leeway=0,
        )
    except jwt.ExpiredSignatureError:
        logger.warning("token rejected: expired")
        return None
    except jwt.InvalidSignatureError:
        logger.warning("token rejected: signature mismatch")
        return None
    except jwt.PyJWTError as e:
        logger.warning("token rejected: malformed (%s)", e)
        return None

    sub, email, role = payload.get("sub"), payload.get("email"), payload.get("role")
    if not (sub and email and role):
        logger.warning("token rejected: malformed (empty identity claims)")
        return None
    return TokenIdentity(id=str(sub), email=str(email), role=str(role))


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: str) -> bool:
    return pwd_context.verify(plain, hashed)
