"""
ActorContextMiddleware implementation.
"""

from .config import get_audit_settings
from .context import actor_from_user, reset_actor_context, set_actor_context
from .utils.network import get_client_ip


class ActorContextMiddleware:
    """
    Publish the requesting user and client address as the audit actor.

    Must be placed after ``AuthenticationMiddleware``. The actor is cleared
    once the response is produced, including when the view raises.
    """

    def __init__(self, get_response):
        self.get_response = get_response
        self.trusted_proxies = get_audit_settings().trusted_proxies

    def __call__(self, request):
        client_ip = get_client_ip(request, self.trusted_proxies)
        context = actor_from_user(getattr(request, "user", None), client_ip=client_ip)
        token = set_actor_context(context)
        try:
            return self.get_response(request)
        finally:
            reset_actor_context(token)
