"""Who is looking at the site, re-derived whenever the auth state changes.

The auth routes publish sign-in, sign-out and refresh events through an
`AuthStateNotifier`. A `SessionGate` subscribes to it and keeps a read-only
`Identity` per session, looking the role up again on every event. The
projection drives what the dashboard shows; destructive operations still
re-check the role in the store.
"""
import logging
from enum import Enum
from typing import Callable, Dict, List, Optional
from pydantic import BaseModel

logger = logging.getLogger(__name__)


class Role(str, Enum):
    ANONYMOUS = "anonymous"
    AUTHENTICATED = "authenticated"
    SUBADMIN = "subadmin"
    ADMIN = "admin"


class AuthEvent(str, Enum):
    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"
    TOKEN_REFRESHED = "TOKEN_REFRESHED"
    USER_UPDATED = "USER_UPDATED"


class AuthSession(BaseModel):
    session_id: str
    user_id: int
    email: str


class Identity(BaseModel):
    user_id: Optional[int] = None
    email: Optional[str] = None
    role: Role = Role.ANONYMOUS

    @property
    def is_authenticated(self) -> bool:
        return self.role != Role.ANONYMOUS

    @property
    def can_access_dashboard(self) -> bool:
        return self.role in (Role.ADMIN, Role.SUBADMIN)

    @property
    def can_delete_posts(self) -> bool:
        return self.role == Role.ADMIN

    @property
    def can_manage_subadmins(self) -> bool:
        return self.role == Role.ADMIN


ANONYMOUS = Identity()

AuthListener = Callable[[AuthEvent, Optional[AuthSession]], None]
RoleLookup = Callable[[int], Optional[str]]


class AuthStateNotifier:
    def __init__(self):
        self._listeners: List[AuthListener] = []

    def subscribe(self, listener: AuthListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)
        return unsubscribe

    def emit(self, event: AuthEvent, session: Optional[AuthSession]):
        for listener in list(self._listeners):
            try:
                listener(event, session)
            except Exception:
                logger.exception(f"Auth listener failed on {event.value}")


class SessionGate:
    def __init__(self, role_lookup: RoleLookup):
        self._role_lookup = role_lookup
        self._identities: Dict[str, Identity] = {}

    def on_auth_state_change(self, event: AuthEvent, session: Optional[AuthSession]):
        if session is None:
            return
        if event == AuthEvent.SIGNED_OUT:
            self.forget_session(session.session_id)
            return
        self._identities[session.session_id] = self.derive(session)

    def derive(self, session: AuthSession) -> Identity:
        """Fresh privilege lookup for the session's user."""
        role = self._role_lookup(session.user_id)
        if role == Role.ADMIN.value:
            resolved = Role.ADMIN
        elif role == Role.SUBADMIN.value:
            resolved = Role.SUBADMIN
        else:
            resolved = Role.AUTHENTICATED
        return Identity(user_id=session.user_id, email=session.email, role=resolved)

    def identity_for(self, session: Optional[AuthSession]) -> Identity:
        if session is None:
            return ANONYMOUS
        identity = self._identities.get(session.session_id)
        if identity is None:
            identity = self.derive(session)
            self._identities[session.session_id] = identity
        return identity

    def forget_session(self, session_id: str):
        self._identities.pop(session_id, None)

    def forget_user(self, user_id: int):
        stale = [sid for sid, identity in self._identities.items() if identity.user_id == user_id]
        for sid in stale:
            del self._identities[sid]

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._identities

    def reset(self):
        self._identities.clear()
