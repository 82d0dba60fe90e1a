import logging
from typing import Dict, List, Optional

from fastapi import Depends, Request, Response
from sqlalchemy.orm import Session

from ..database import get_db
from ..models import User
from .config import Settings
from .errors import AuthError
from .security import create_session_token, decode_session_token, dummy_hash, verify_password
from .sessions import SessionData, SessionStore

logger = logging.getLogger(__name__)


class RequestContext:
    """Per-request view of the caller's session: identity plus outgoing flash messages."""

    def __init__(self, request: Request, store: SessionStore, settings: Settings):
        self.store = store
        self.settings = settings
        self.session: Optional[SessionData] = None
        self._issue_cookie = False
        self._clear_cookie = False

        token = request.cookies.get(settings.session_cookie_name)
        session_id = decode_session_token(token, settings) if token else None
        if session_id:
            self.session = store.get(session_id)
        if token and self.session is None:
            # forged, expired or restarted-server cookie
            self._clear_cookie = True

    @property
    def user_id(self) -> Optional[int]:
        return self.session.user_id if self.session else None

    @property
    def is_authenticated(self) -> bool:
        return self.user_id is not None

    def _ensure_session(self) -> SessionData:
        if self.session is None:
            self.session = self.store.create()
            self._issue_cookie = True
            self._clear_cookie = False
        return self.session

    def flash(self, category: str, message: str) -> None:
        session = self._ensure_session()
        self.store.add_flash(session.id, category, message)

    def consume_messages(self) -> List[Dict[str, str]]:
        if self.session is None:
            return []
        return [{"category": c, "message": m} for c, m in self.store.pop_flashes(self.session.id)]

    def login(self, user: User) -> None:
        # new id on every login, pending flashes carried over
        pending = []
        if self.session is not None:
            pending = self.store.pop_flashes(self.session.id)
            self.store.destroy(self.session.id)
        self.session = self.store.create(user_id=user.id)
        for category, message in pending:
            self.store.add_flash(self.session.id, category, message)
        self._issue_cookie = True
        self._clear_cookie = False
        logger.info("User %s logged in", user.user_name)

    def logout(self) -> None:
        if self.session is not None:
            logger.info("Session for user %s closed", self.session.user_id)
            self.store.destroy(self.session.id)
        self.session = None
        self._issue_cookie = False
        self._clear_cookie = True

    def apply(self, response: Response) -> Response:
        name = self.settings.session_cookie_name
        if self._issue_cookie and self.session is not None:
            remaining = int((self.session.expires_at - self.store.now()).total_seconds())
            response.set_cookie(
                key=name,
                value=create_session_token(self.session.id, max(remaining, 0), self.settings),
                httponly=True,
                secure=self.settings.is_production,
                samesite="lax",
                max_age=max(remaining, 0),
                path="/",
            )
        elif self._clear_cookie:
            response.delete_cookie(name, path="/")
        return response


def get_request_context(request: Request) -> RequestContext:
    ctx = getattr(request.state, "context", None)
    if ctx is None:
        ctx = RequestContext(request, request.app.state.sessions, request.app.state.settings)
        request.state.context = ctx
    return ctx


def authenticate(db: Session, identifier: str, password: str) -> User:
    """Resolve credentials to a user. Unknown user and wrong password fail the same way."""
    identifier = (identifier or "").strip()
    user = None
    if identifier:
        user = db.query(User).filter(User.user_name == identifier).first()
        if user is None and "@" in identifier:
            user = db.query(User).filter(User.email == identifier.lower()).first()
    # an unknown user still pays for one hash check
    hashed = user.password_hash if user is not None else dummy_hash()
    if not verify_password(password, hashed) or user is None:
        logger.info("Failed login attempt for %r", identifier)
        raise AuthError("Invalid username or password")
    return user


def get_current_user(
    ctx: RequestContext = Depends(get_request_context),
    db: Session = Depends(get_db),
) -> User:
    if ctx.user_id is None:
        raise AuthError("Please login")
    user = db.query(User).filter(User.id == ctx.user_id).first()
    if not user:
        ctx.logout()
        raise AuthError("Please login")
    return user
