"""Request authorization pipeline.

Stage A (``get_auth_context``) turns the ``Authorization`` header into an
``AuthContext``; it never fails the request on its own. Stage B
(``require_roles``) is attached per procedure and rejects anonymous callers
with ``Unauthenticated`` and callers outside the allow-list with ``Forbidden``.
"""
import logging
from typing import NamedTuple, Optional

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from . import config, crud
from .auth import verify_access_token
from .db import SessionLocal
from .erp import ERPService, build_erp_service
from .errors import Forbidden, Unauthenticated
from .models import Role
from .schemas import AuthUser

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "


# Dependency to get DB session per request

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


class AuthContext(NamedTuple):
    authenticated: bool
    user: Optional[AuthUser] = None


ANONYMOUS = AuthContext(authenticated=False)


def resolve_auth_context(db: Session, authorization: str | None) -> AuthContext:
    if not authorization:
        logger.debug("anonymous request: no authorization header")
        return ANONYMOUS
    if not authorization.startswith(BEARER_PREFIX):
        logger.warning("authentication failed: authorization header is not a bearer token")
        return ANONYMOUS
    token = authorization[len(BEARER_PREFIX):].strip()
    if not token:
        logger.warning("authentication failed: empty bearer token")
        return ANONYMOUS
    identity = verify_access_token(token)
    if identity is None:
        logger.warning("authentication failed: invalid or expired token")
        return ANONYMOUS
    # always reload; role and identity changes apply on the next request
    user = crud.get_user(db, identity.id)
    if user is None:
        logger.warning("authentication failed: user %s not found", identity.id)
        return ANONYMOUS
    return AuthContext(authenticated=True, user=AuthUser.model_validate(user))


def get_auth_context(
    authorization: str | None = Header(default=None),
    db: Session = Depends(get_db),
) -> AuthContext:
    return resolve_auth_context(db, authorization)


def require_roles(*roles: Role):
    allowed = {Role(r) for r in roles}

    def dependency(ctx: AuthContext = Depends(get_auth_context)) -> AuthUser:
        if not ctx.authenticated:
            raise Unauthenticated()
        if allowed and ctx.user.role not in allowed:
            logger.warning(
                "permission denied: role %s requires one of %s",
                ctx.user.role.value,
                ", ".join(sorted(r.value for r in allowed)),
            )
            raise Forbidden(
                f"Access denied: Your role ({ctx.user.role.value}) does not have permission for this operation."
            )
        return ctx.user

    return dependency


authenticated = require_roles()
admin_only = require_roles(Role.ADMIN)
factory_only = require_roles(Role.FACTORY)


def get_erp_service() -> ERPService:
    return build_erp_service(config.get_settings())
