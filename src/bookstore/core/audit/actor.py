"""Resolution of the actor recorded as "changed by".

The commit hook only sees an ``ActorResolver`` callable. The default
one reads a ContextVar that ActorContextMiddleware fills per request,
so each async task sees its own actor.
"""

from collections.abc import Callable
from contextvars import ContextVar
from typing import Any

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from bookstore.core.constants import ANONYMOUS_ACTOR, MAX_ACTOR_LENGTH


log = structlog.get_logger()

ActorResolver = Callable[[], str | None]

_current_actor: ContextVar[str | None] = ContextVar("current_actor", default=None)


def set_current_actor(actor: str | None) -> None:
    """Set the actor for the current request or task."""
    _current_actor.set(actor)


def clear_current_actor() -> None:
    _current_actor.set(None)


def get_current_actor() -> str | None:
    """Default ActorResolver: the actor bound to the current context."""
    return _current_actor.get()


def resolve_actor(resolver: ActorResolver, logger: Any = None) -> str:
    """Call ``resolver`` and fall back to "Anonymous".

    Never raises: a failing resolver is logged and treated as no
    identity.
    """
    logger = logger or log
    try:
        actor = resolver()
    except Exception as exc:
        logger.warning("actor_resolution_failed", error=str(exc))
        return ANONYMOUS_ACTOR

    if not isinstance(actor, str) or not actor.strip():
        return ANONYMOUS_ACTOR
    return actor.strip()[:MAX_ACTOR_LENGTH]


def _authenticated_name(request: Request) -> str | None:
    # request.user is only available with AuthenticationMiddleware installed
    if "user" not in request.scope:
        return None
    user = request.scope["user"]
    if not getattr(user, "is_authenticated", False):
        return None
    return getattr(user, "display_name", None)


class ActorContextMiddleware(BaseHTTPMiddleware):
    """Middleware that binds the requesting actor for the audit trail.

    Uses the authenticated Starlette user when there is one, otherwise
    the configured trusted header. Header lookup is disabled unless a
    header name is given, since clients can set any header.
    """

    def __init__(self, app: Any, actor_header: str | None = None) -> None:
        super().__init__(app)
        self.actor_header = actor_header

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        actor = _authenticated_name(request)
        if actor is None and self.actor_header:
            actor = request.headers.get(self.actor_header)

        request.state.actor = actor
        token = _current_actor.set(actor)
        try:
            return await call_next(request)
        finally:
            _current_actor.reset(token)
