"""Session and role resolution.

``SessionResolver`` turns identity-provider events into ``AuthState``
snapshots. The locally cached admin flag is only a fast first answer: every
session is re-verified against the profile row and the verified value
always replaces the cached one.
"""
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, List, Optional
import enum
import logging
import threading

logger = logging.getLogger(__name__)

INITIAL_GET_SESSION = 'INITIAL_GET_SESSION'


class Phase(enum.Enum):
    UNINITIALIZED = 'UNINITIALIZED'
    LOADING = 'LOADING'
    RESOLVED = 'RESOLVED'


@dataclass(frozen=True)
class AuthSession:
    user: Dict[str, Any]
    access_token: str
    refresh_token: Optional[str] = None
    provider: Optional[str] = None

    @property
    def user_id(self):
        return self.user.get('id')

    @property
    def email(self):
        return self.user.get('email')


@dataclass(frozen=True)
class AuthState:
    """Snapshot published to subscribers.

    ``phase`` tracks verification and ``loading`` tracks whether callers
    should wait. ``phase=LOADING`` with ``loading=False`` means the caller
    was unblocked before verification finished, either by the cached admin
    flag or by the safety timeout; ``is_admin`` then holds the cached or
    current value until a ``RESOLVED`` snapshot replaces it.
    """

    phase: Phase = Phase.UNINITIALIZED
    user: Optional[Dict[str, Any]] = field(default=None, compare=False)
    is_admin: bool = False
    loading: bool = True

    def to_dict(self):
        user = None
        if self.user:
            user = {'id': self.user.get('id'), 'email': self.user.get('email')}
        return {
            'phase': self.phase.value,
            'user': user,
            'is_admin': self.is_admin,
            'loading': self.loading,
        }


class SessionResolver:

    def __init__(self, identity, profiles, cache, timeout=5.0,
                 initialized=False):
        self.identity = identity
        self.profiles = profiles
        self.cache = cache
        self.timeout = timeout

        self._initialized = initialized
        self._session = None
        self._listeners: List[Callable[[AuthState], None]] = []
        self._timer = None
        self._unsubscribe = None
        # Events are applied one at a time; the state lock only guards the
        # snapshot so the safety valve never waits on a slow verification.
        self._event_lock = threading.RLock()
        self._state_lock = threading.Lock()
        self._state = AuthState(is_admin=self.cache.get() is True)

    @property
    def state(self) -> AuthState:
        with self._state_lock:
            return self._state

    @property
    def initialized(self):
        return self._initialized

    def subscribe(self, listener):
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)
        return unsubscribe

    def _publish(self, **changes):
        with self._state_lock:
            self._state = replace(self._state, **changes)
            state = self._state
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:
                logger.exception("Auth state listener failed")
        return state

    def start(self):
        logger.info("Auth: initializing session resolver")
        self._publish(phase=Phase.LOADING, loading=True)

        self._timer = threading.Timer(self.timeout, self._on_timeout)
        self._timer.daemon = True
        self._timer.start()

        self._unsubscribe = self.identity.on_auth_state_change(
            self._on_auth_change)

        try:
            session = self.identity.get_session()
        except Exception as e:
            logger.error("Auth: get_session error: %s", e)
            session = None
        self.handle_session(session, INITIAL_GET_SESSION)
        return self.state

    def stop(self):
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def _on_timeout(self):
        if self.state.loading:
            logger.warning(
                "Auth: initialization timed out, forcing loading to false")
            self._publish(loading=False)

    def _on_auth_change(self, event, session):
        logger.info("Auth: state change event %s", event)
        self.handle_session(session, f'AUTH_CHANGE_{event}')

    def handle_session(self, session: Optional[AuthSession], source):
        with self._event_lock:
            if self._initialized and source == INITIAL_GET_SESSION:
                logger.debug("Auth: initial session already handled")
                return self.state

            logger.info(
                "Auth: handling session from %s: %s",
                source,
                'user present' if session else 'no session',
            )
            self._session = session

            if session is None:
                self.cache.clear()
                self._publish(
                    phase=Phase.RESOLVED,
                    user=None,
                    is_admin=False,
                    loading=False,
                )
            else:
                self._publish(user=session.user)
                cached = self.cache.get()
                if cached and self.state.loading:
                    logger.info("Auth: using cached admin status to unblock")
                    self._publish(is_admin=True, loading=False)
                self._verify(session)

            self._initialized = True
            return self.state

    def _verify(self, session):
        logger.info("Auth: verifying admin status for %s", session.user_id)
        try:
            is_admin = self.profiles.resolve_admin(session.user)
        except Exception as e:
            # Fail closed.
            logger.error("Auth: admin check failed: %s", e)
            self.cache.clear()
            self._publish(phase=Phase.RESOLVED, is_admin=False, loading=False)
            return

        logger.info("Auth: admin status resolved: %s", is_admin)
        self.cache.set(is_admin)
        self._publish(phase=Phase.RESOLVED, is_admin=is_admin, loading=False)

    def sign_out(self):
        logger.info("Auth: signing out")
        session = self._session
        self._session = None
        try:
            self.identity.sign_out(session)
        finally:
            self.cache.clear()
            self._publish(
                phase=Phase.RESOLVED,
                user=None,
                is_admin=False,
                loading=False,
            )
        return self.state
