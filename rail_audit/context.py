"""
Ambient actor context.

The actor of a mutation (who issued it and from where) is request or task
scoped. It is kept in a context variable so that signal handlers can read it
and hand it explicitly to the change capture engine.
"""

from contextlib import contextmanager
from contextvars import ContextVar, Token
from typing import Iterator, Optional

from .types import ActorContext

_actor_context: ContextVar[Optional[ActorContext]] = ContextVar(
    "rail_audit_actor_context", default=None
)


def get_actor_context() -> ActorContext:
    """Return the current actor, or an empty context when none is set."""
    return _actor_context.get() or ActorContext()


def set_actor_context(context: Optional[ActorContext]) -> Token:
    return _actor_context.set(context)


def reset_actor_context(token: Token) -> None:
    _actor_context.reset(token)


@contextmanager
def actor_context(
    user_id: Optional[object] = None,
    username: Optional[str] = None,
    client_ip: Optional[str] = None,
) -> Iterator[ActorContext]:
    """
    Run a block on behalf of an actor.

    Example:
        with actor_context(user_id=42, username="batch-import"):
            Invoice.objects.filter(...).delete()
    """
    context = ActorContext(
        user_id=str(user_id) if user_id is not None else None,
        username=username,
        client_ip=client_ip,
    )
    token = set_actor_context(context)
    try:
        yield context
    finally:
        reset_actor_context(token)


def actor_from_user(user, client_ip: Optional[str] = None) -> ActorContext:
    """Build an actor context from a Django user (anonymous users are absent)."""
    if user is None or not getattr(user, "is_authenticated", False):
        return ActorContext(client_ip=client_ip)
    user_id = getattr(user, "pk", None)
    if hasattr(user, "get_username"):
        username = user.get_username()
    else:
        username = getattr(user, "username", None)
    return ActorContext(
        user_id=str(user_id) if user_id is not None else None,
        username=username,
        client_ip=client_ip,
    )


__all__ = [
    "actor_context",
    "actor_from_user",
    "get_actor_context",
    "reset_actor_context",
    "set_actor_context",
]
