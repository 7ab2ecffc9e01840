"""Auth form validation and the sign-in / sign-up form state machine."""
import enum
import logging
from dataclasses import dataclass

from django import forms

from .gateway import DuplicateAccount, InvalidCredentials

logger = logging.getLogger(__name__)

EMAIL_ERROR = 'Please enter a valid email address'
PASSWORD_ERROR = 'Password must be at least 6 characters'
FULL_NAME_ERROR = 'Full name must be at least 2 characters'


class SignInForm(forms.Form):
    email = forms.EmailField(
        error_messages={'required': EMAIL_ERROR, 'invalid': EMAIL_ERROR},
    )
    password = forms.CharField(
        min_length=6,
        strip=False,
        widget=forms.PasswordInput,
        error_messages={'required': PASSWORD_ERROR, 'min_length': PASSWORD_ERROR},
    )


class SignUpForm(SignInForm):
    full_name = forms.CharField(
        min_length=2,
        max_length=150,
        error_messages={'required': FULL_NAME_ERROR, 'min_length': FULL_NAME_ERROR},
    )

    field_order = ['full_name', 'email', 'password']


class AuthMode(str, enum.Enum):
    SIGN_IN = 'signin'
    SIGN_UP = 'signup'

    @classmethod
    def parse(cls, value):
        try:
            return cls(value)
        except ValueError:
            return cls.SIGN_IN


class FormPhase(str, enum.Enum):
    IDLE = 'idle'
    SUBMITTING = 'submitting'


@dataclass(frozen=True)
class Notice:
    """A transient, dismissible notification."""
    title: str
    description: str
    variant: str = 'default'

    @property
    def is_error(self):
        return self.variant == 'destructive'

    def __str__(self):
        return f"{self.title}: {self.description}"


SOMETHING_WENT_WRONG = Notice('Something went wrong', 'Please try again later.', 'destructive')


def notice_for_result(mode, result):
    """Map a gateway result onto the notification shown to the user."""
    error = result.error
    if mode is AuthMode.SIGN_UP:
        if error is None:
            return Notice('Welcome to Civic Connect!', 'Your account has been created successfully.')
        if isinstance(error, DuplicateAccount):
            return Notice(
                'Account exists',
                'This email is already registered. Please sign in instead.',
                'destructive',
            )
        return Notice('Sign up failed', error.message, 'destructive')

    if error is None:
        return Notice('Welcome back!', 'You have been signed in successfully.')
    if isinstance(error, InvalidCredentials):
        return Notice('Sign in failed', 'Invalid email or password. Please try again.', 'destructive')
    return Notice('Sign in failed', error.message, 'destructive')


class AuthFormState:
    """State behind the auth page.

    ``mode`` is SIGN_IN or SIGN_UP and only changes through
    :meth:`toggle_mode`, which wipes every value and error. ``phase`` is
    SUBMITTING only while :meth:`submit` is waiting on the gateway.
    """

    FIELDS = ('email', 'password', 'full_name')

    def __init__(self, mode=AuthMode.SIGN_IN, values=None):
        self.mode = AuthMode(mode)
        self.phase = FormPhase.IDLE
        self.values = self._blank_values()
        self.errors = {}
        self.last_result = None
        for field, value in (values or {}).items():
            if field in self.FIELDS:
                self.values[field] = value

    @classmethod
    def _blank_values(cls):
        return {field: '' for field in cls.FIELDS}

    @property
    def is_sign_up(self):
        return self.mode is AuthMode.SIGN_UP

    @property
    def is_submitting(self):
        return self.phase is FormPhase.SUBMITTING

    def form_class(self):
        return SignUpForm if self.is_sign_up else SignInForm

    def set_value(self, field, value):
        if field not in self.FIELDS:
            raise KeyError(field)
        self.values[field] = value
        # typing into a field clears its error
        self.errors.pop(field, None)

    def toggle_mode(self):
        if self.is_submitting:
            return
        self.mode = AuthMode.SIGN_IN if self.is_sign_up else AuthMode.SIGN_UP
        self.values = self._blank_values()
        self.errors = {}
        self.last_result = None

    def validate(self):
        form = self.form_class()(data=self.values)
        if form.is_valid():
            self.errors = {}
            self.cleaned_data = form.cleaned_data
            return True
        self.errors = {field: messages[0] for field, messages in form.errors.items()}
        return False

    def submit(self, gateway):
        """Validate, then call the gateway. Returns a :class:`Notice`, or
        None when validation blocked the submit."""
        if self.is_submitting or not self.validate():
            return None

        data = self.cleaned_data
        self.phase = FormPhase.SUBMITTING
        try:
            if self.is_sign_up:
                result = gateway.sign_up(data['email'], data['password'], data['full_name'])
            else:
                result = gateway.sign_in(data['email'], data['password'])
            self.last_result = result
            return notice_for_result(self.mode, result)
        except Exception:
            logger.exception('Unexpected error during %s', self.mode.value)
            return SOMETHING_WENT_WRONG
        finally:
            self.phase = FormPhase.IDLE

    @property
    def succeeded(self):
        return self.last_result is not None and self.last_result.ok
