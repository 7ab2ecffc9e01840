"""Sign-in / sign-up / sign-out behind one small interface.

Failures come back as tagged :class:`AuthError` variants rather than free
text, so callers branch on the type (or ``code``) instead of matching
message substrings.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

from django.contrib.auth import authenticate, login, logout
from django.db import DatabaseError, IntegrityError, transaction
from rest_framework.authtoken.models import Token

from .models import User

logger = logging.getLogger(__name__)


class AuthError(Exception):
    code = 'auth_failed'
    default_message = 'Authentication failed.'

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class DuplicateAccount(AuthError):
    code = 'duplicate_account'
    default_message = 'This email is already registered.'


class InvalidCredentials(AuthError):
    code = 'invalid_credentials'
    default_message = 'Invalid email or password.'


class OtherAuthError(AuthError):
    code = 'auth_failed'


@dataclass(frozen=True)
class Session:
    user: Any
    profile: Any
    token: str


@dataclass(frozen=True)
class AuthResult:
    session: Optional[Session] = None
    error: Optional[AuthError] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.session is not None


def normalize_email(email: str) -> str:
    return (email or '').strip().lower()


class AuthGateway:
    """Auth operations bound to one request.

    ``persist_session`` logs the user into the Django session as well as
    issuing an API token; page views want that, token-only API calls don't.
    """

    def __init__(self, request=None, persist_session: bool = True):
        self.request = request
        self.persist_session = persist_session

    def sign_in(self, email: str, password: str) -> AuthResult:
        email = normalize_email(email)
        try:
            user = authenticate(self.request, username=email, password=password)
        except DatabaseError:
            logger.exception('Database error during sign in for %s', email)
            return AuthResult(error=OtherAuthError('Authentication service unavailable.'))

        if user is None:
            logger.warning('Sign in failed for %s: invalid credentials', email)
            return AuthResult(error=InvalidCredentials())

        logger.info('User %s signed in', user.pk)
        return AuthResult(session=self._open_session(user))

    def sign_up(self, email: str, password: str, full_name: Optional[str] = None) -> AuthResult:
        email = normalize_email(email)
        if User.objects.filter(email__iexact=email).exists():
            logger.warning('Sign up rejected for %s: account exists', email)
            return AuthResult(error=DuplicateAccount())

        try:
            with transaction.atomic():
                user = User.objects.create_user(username=email, email=email, password=password)
                profile = user.profile
                profile.full_name = (full_name or '').strip() or None
                profile.save(update_fields=['full_name', 'updated_at'])
        except IntegrityError:
            # lost a race with a concurrent sign up for the same email
            logger.warning('Sign up for %s hit a uniqueness conflict', email)
            return AuthResult(error=DuplicateAccount())
        except DatabaseError:
            logger.exception('Database error during sign up for %s', email)
            return AuthResult(error=OtherAuthError('Authentication service unavailable.'))

        logger.info('User %s registered', user.pk)
        return AuthResult(session=self._open_session(user))

    def sign_out(self) -> None:
        user = getattr(self.request, 'user', None)
        if getattr(user, 'is_authenticated', False):
            Token.objects.filter(user=user).delete()
            logger.info('User %s signed out', user.pk)
        if self.persist_session and self.request is not None and hasattr(self.request, 'session'):
            logout(self.request)

    def _open_session(self, user) -> Session:
        token, _ = Token.objects.get_or_create(user=user)
        if self.persist_session and self.request is not None and hasattr(self.request, 'session'):
            login(self.request, user)
        return Session(user=user, profile=user.profile, token=token.key)
