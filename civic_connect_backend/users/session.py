from dataclasses import dataclass
from typing import Any, Optional

from .gateway import AuthGateway


@dataclass(frozen=True)
class SessionState:
    """What page code knows about the visitor: ``{user, profile, loading}``."""
    user: Any = None
    profile: Any = None
    loading: bool = False

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    @property
    def role(self) -> Optional[str]:
        return getattr(self.profile, 'role', None)

    @property
    def email(self) -> Optional[str]:
        return getattr(self.user, 'email', None)


ANONYMOUS = SessionState()


class SessionProvider:
    """Reads the session for one request and hands out its auth gateway.

    Views receive a provider instead of reaching for ``request.user``
    directly; tests swap in a provider returning a canned state.
    """

    def __init__(self, request):
        self.request = request

    def current(self) -> SessionState:
        user = getattr(self.request, 'user', None)
        if not getattr(user, 'is_authenticated', False):
            return ANONYMOUS
        return SessionState(user=user, profile=getattr(user, 'profile', None))

    def gateway(self) -> AuthGateway:
        return AuthGateway(self.request)
