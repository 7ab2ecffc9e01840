from types import SimpleNamespace

from django.contrib.auth import get_user_model
from django.test import TestCase, RequestFactory
from django.urls import reverse
from rest_framework.test import APITestCase, APIClient
from rest_framework import status

from .capabilities import (
    ADMIN_PANEL, MANAGE_ROLES, TRIAGE_REPORTS, VIEW_ANALYTICS, has_capability, role_of,
)
from .forms import (
    AuthFormState, AuthMode, FormPhase, EMAIL_ERROR, PASSWORD_ERROR, FULL_NAME_ERROR,
    SOMETHING_WENT_WRONG,
)
from .gateway import (
    AuthGateway, AuthResult, DuplicateAccount, InvalidCredentials, OtherAuthError, Session,
)
from .models import Profile, Role
from .session import ANONYMOUS, SessionProvider


User = get_user_model()


def make_user(email, password='secret123', role=None, full_name=None, department=None):
    user = User.objects.create_user(username=email, email=email, password=password)
    profile = user.profile
    if role:
        profile.role = role
    profile.full_name = full_name
    profile.department = department
    profile.save()
    return user


class FakeGateway:
    """Records calls and answers with a canned result."""

    def __init__(self, result=None, raises=None):
        self.result = result
        self.raises = raises
        self.calls = []

    def _answer(self, name, *args):
        self.calls.append((name,) + args)
        if self.raises:
            raise self.raises
        return self.result

    def sign_in(self, email, password):
        return self._answer('sign_in', email, password)

    def sign_up(self, email, password, full_name=None):
        return self._answer('sign_up', email, password, full_name)


OK_RESULT = AuthResult(session=Session(user=object(), profile=object(), token='t'))


class AuthFormValidationTest(TestCase):
    def test_bad_email_reports_only_email(self):
        state = AuthFormState(values={'email': 'bad', 'password': '123456'})
        self.assertFalse(state.validate())
        self.assertEqual(state.errors, {'email': EMAIL_ERROR})

    def test_short_password_reports_only_password(self):
        state = AuthFormState(values={'email': 'a@b.com', 'password': '12'})
        self.assertFalse(state.validate())
        self.assertEqual(state.errors, {'password': PASSWORD_ERROR})

    def test_short_full_name_in_sign_up(self):
        state = AuthFormState(
            mode=AuthMode.SIGN_UP,
            values={'email': 'a@b.com', 'password': '123456', 'full_name': 'A'},
        )
        self.assertFalse(state.validate())
        self.assertEqual(state.errors, {'full_name': FULL_NAME_ERROR})

    def test_full_name_ignored_in_sign_in(self):
        state = AuthFormState(values={'email': 'a@b.com', 'password': '123456', 'full_name': 'A'})
        self.assertTrue(state.validate())
        self.assertEqual(state.errors, {})

    def test_empty_full_name_rejected_in_sign_up(self):
        state = AuthFormState(
            mode=AuthMode.SIGN_UP,
            values={'email': 'a@b.com', 'password': '123456', 'full_name': ''},
        )
        self.assertFalse(state.validate())
        self.assertEqual(state.errors, {'full_name': FULL_NAME_ERROR})

    def test_every_field_reported(self):
        state = AuthFormState(
            mode=AuthMode.SIGN_UP,
            values={'email': '', 'password': '', 'full_name': 'x'},
        )
        self.assertFalse(state.validate())
        self.assertEqual(set(state.errors), {'email', 'password', 'full_name'})

    def test_set_value_clears_that_field_error(self):
        state = AuthFormState(values={'email': 'bad', 'password': '12'})
        state.validate()
        state.set_value('email', 'a@b.com')
        self.assertNotIn('email', state.errors)
        self.assertIn('password', state.errors)

    def test_set_value_rejects_unknown_field(self):
        with self.assertRaises(KeyError):
            AuthFormState().set_value('phone', '123')


class AuthFormStateTest(TestCase):
    def test_toggle_clears_values_and_errors(self):
        state = AuthFormState(values={'email': 'bad', 'password': '12'})
        state.validate()
        state.toggle_mode()
        self.assertIs(state.mode, AuthMode.SIGN_UP)
        self.assertEqual(state.values, {'email': '', 'password': '', 'full_name': ''})
        self.assertEqual(state.errors, {})
        state.toggle_mode()
        self.assertIs(state.mode, AuthMode.SIGN_IN)

    def test_toggle_ignored_while_submitting(self):
        state = AuthFormState()
        state.phase = FormPhase.SUBMITTING
        state.toggle_mode()
        self.assertIs(state.mode, AuthMode.SIGN_IN)

    def test_invalid_form_never_calls_gateway(self):
        gateway = FakeGateway(result=OK_RESULT)
        state = AuthFormState(values={'email': 'bad', 'password': '123456'})
        self.assertIsNone(state.submit(gateway))
        self.assertEqual(gateway.calls, [])

    def test_sign_in_success(self):
        gateway = FakeGateway(result=OK_RESULT)
        state = AuthFormState(values={'email': ' A@B.com', 'password': '123456'})
        notice = state.submit(gateway)
        self.assertEqual(notice.title, 'Welcome back!')
        self.assertFalse(notice.is_error)
        self.assertTrue(state.succeeded)
        self.assertIs(state.phase, FormPhase.IDLE)
        self.assertEqual(gateway.calls[0][0], 'sign_in')

    def test_sign_in_invalid_credentials(self):
        gateway = FakeGateway(result=AuthResult(error=InvalidCredentials()))
        state = AuthFormState(values={'email': 'a@b.com', 'password': '123456'})
        notice = state.submit(gateway)
        self.assertEqual(notice.title, 'Sign in failed')
        self.assertEqual(notice.description, 'Invalid email or password. Please try again.')
        self.assertTrue(notice.is_error)
        self.assertFalse(state.succeeded)

    def test_sign_in_other_error_passes_message_through(self):
        gateway = FakeGateway(result=AuthResult(error=OtherAuthError('Service down')))
        notice = AuthFormState(values={'email': 'a@b.com', 'password': '123456'}).submit(gateway)
        self.assertEqual(notice.description, 'Service down')

    def test_sign_up_success_passes_full_name(self):
        gateway = FakeGateway(result=OK_RESULT)
        state = AuthFormState(
            mode=AuthMode.SIGN_UP,
            values={'email': 'a@b.com', 'password': '123456', 'full_name': 'Ada'},
        )
        notice = state.submit(gateway)
        self.assertEqual(notice.title, 'Welcome to Civic Connect!')
        self.assertEqual(gateway.calls, [('sign_up', 'a@b.com', '123456', 'Ada')])

    def test_sign_up_without_full_name_never_calls_gateway(self):
        gateway = FakeGateway(result=OK_RESULT)
        state = AuthFormState(mode=AuthMode.SIGN_UP, values={'email': 'a@b.com', 'password': '123456'})
        self.assertIsNone(state.submit(gateway))
        self.assertEqual(gateway.calls, [])

    def test_sign_up_duplicate(self):
        gateway = FakeGateway(result=AuthResult(error=DuplicateAccount()))
        state = AuthFormState(mode=AuthMode.SIGN_UP, values={'email': 'a@b.com', 'password': '123456', 'full_name': 'Ada'})
        notice = state.submit(gateway)
        self.assertEqual(notice.title, 'Account exists')
        self.assertEqual(notice.description, 'This email is already registered. Please sign in instead.')

    def test_unexpected_exception_becomes_generic_notice(self):
        gateway = FakeGateway(raises=RuntimeError('boom'))
        state = AuthFormState(values={'email': 'a@b.com', 'password': '123456'})
        with self.assertLogs('users.forms', level='ERROR'):
            notice = state.submit(gateway)
        self.assertEqual(notice, SOMETHING_WENT_WRONG)
        self.assertIs(state.phase, FormPhase.IDLE)

    def test_mode_parse_falls_back_to_sign_in(self):
        self.assertIs(AuthMode.parse('signup'), AuthMode.SIGN_UP)
        self.assertIs(AuthMode.parse('nonsense'), AuthMode.SIGN_IN)
        self.assertIs(AuthMode.parse(None), AuthMode.SIGN_IN)


class AuthGatewayTest(TestCase):
    def test_sign_up_creates_profile_and_token(self):
        result = AuthGateway(persist_session=False).sign_up('New@Example.com ', 'secret123', 'Ada Lovelace')
        self.assertTrue(result.ok)
        self.assertEqual(result.session.user.email, 'new@example.com')
        self.assertEqual(result.session.profile.full_name, 'Ada Lovelace')
        self.assertEqual(result.session.profile.role, Role.USER)
        self.assertTrue(result.session.token)

    def test_sign_up_duplicate_email(self):
        make_user('taken@example.com')
        result = AuthGateway(persist_session=False).sign_up('TAKEN@example.com', 'secret123')
        self.assertIsInstance(result.error, DuplicateAccount)
        self.assertEqual(result.error.code, 'duplicate_account')
        self.assertEqual(User.objects.filter(email__iexact='taken@example.com').count(), 1)

    def test_sign_in_wrong_password(self):
        make_user('ada@example.com')
        result = AuthGateway(persist_session=False).sign_in('ada@example.com', 'wrong-pass')
        self.assertFalse(result.ok)
        self.assertIsInstance(result.error, InvalidCredentials)

    def test_sign_in_normalizes_email(self):
        make_user('ada@example.com')
        result = AuthGateway(persist_session=False).sign_in('  ADA@example.com', 'secret123')
        self.assertTrue(result.ok)


class CapabilityTest(TestCase):
    def test_role_table(self):
        self.assertFalse(has_capability(Role.USER, ADMIN_PANEL))
        self.assertTrue(has_capability(Role.ADMIN, ADMIN_PANEL))
        self.assertTrue(has_capability(Role.ADMIN, TRIAGE_REPORTS))
        self.assertTrue(has_capability(Role.ADMIN, VIEW_ANALYTICS))
        self.assertFalse(has_capability(Role.ADMIN, MANAGE_ROLES))
        self.assertTrue(has_capability(Role.SUPERADMIN, MANAGE_ROLES))
        self.assertFalse(has_capability(None, ADMIN_PANEL))
        self.assertFalse(has_capability('janitor', ADMIN_PANEL))

    def test_role_of(self):
        admin = make_user('admin@example.com', role=Role.ADMIN)
        self.assertEqual(role_of(admin), Role.ADMIN)
        self.assertIsNone(role_of(SimpleNamespace(is_authenticated=False)))

    def test_superuser_gets_superadmin_profile(self):
        root = User.objects.create_superuser(username='root@example.com', email='root@example.com', password='x')
        self.assertEqual(root.profile.role, Role.SUPERADMIN)

    def test_profile_email_follows_user(self):
        user = make_user('old@example.com')
        user.email = 'new@example.com'
        user.save()
        self.assertEqual(Profile.objects.get(pk=user.pk).email, 'new@example.com')


class SessionProviderTest(TestCase):
    def setUp(self):
        self.factory = RequestFactory()

    def test_anonymous(self):
        request = self.factory.get('/')
        request.user = SimpleNamespace(is_authenticated=False)
        state = SessionProvider(request).current()
        self.assertIs(state, ANONYMOUS)
        self.assertFalse(state.is_authenticated)
        self.assertIsNone(state.role)

    def test_signed_in(self):
        user = make_user('ada@example.com', role=Role.ADMIN)
        request = self.factory.get('/')
        request.user = user
        state = SessionProvider(request).current()
        self.assertTrue(state.is_authenticated)
        self.assertEqual(state.role, Role.ADMIN)
        self.assertEqual(state.email, 'ada@example.com')
        self.assertFalse(state.loading)


class AuthAPITest(APITestCase):
    def setUp(self):
        self.client = APIClient()

    def test_sign_up(self):
        resp = self.client.post(reverse('api-sign-up'), {
            'email': 'ada@example.com', 'password': 'secret123', 'full_name': 'Ada',
        }, format='json')
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED)
        data = resp.json()
        self.assertEqual(data['profile']['full_name'], 'Ada')
        self.assertEqual(data['profile']['id'], data['user']['id'])
        self.assertIn('token', data)

    def test_sign_up_validation_messages(self):
        resp = self.client.post(reverse('api-sign-up'), {
            'email': 'bad', 'password': '12', 'full_name': 'A',
        }, format='json')
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        errors = resp.json()['errors']
        self.assertEqual(errors['email'], [EMAIL_ERROR])
        self.assertEqual(errors['password'], [PASSWORD_ERROR])
        self.assertEqual(errors['full_name'], [FULL_NAME_ERROR])

    def test_sign_up_requires_full_name(self):
        for payload in ({'email': 'ada@example.com', 'password': 'secret123'},
                        {'email': 'ada@example.com', 'password': 'secret123', 'full_name': ''}):
            resp = self.client.post(reverse('api-sign-up'), payload, format='json')
            self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
            self.assertEqual(resp.json()['errors']['full_name'], [FULL_NAME_ERROR])
        self.assertFalse(User.objects.filter(email='ada@example.com').exists())

    def test_sign_up_duplicate_conflict(self):
        make_user('ada@example.com')
        resp = self.client.post(reverse('api-sign-up'), {
            'email': 'ada@example.com', 'password': 'secret123', 'full_name': 'Ada',
        }, format='json')
        self.assertEqual(resp.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(resp.json()['code'], 'duplicate_account')

    def test_sign_in_and_me(self):
        make_user('ada@example.com', full_name='Ada')
        resp = self.client.post(reverse('api-sign-in'), {
            'email': 'ada@example.com', 'password': 'secret123',
        }, format='json')
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        token = resp.json()['token']

        self.client.credentials(HTTP_AUTHORIZATION='Token ' + token)
        me = self.client.get(reverse('api-current-user'))
        self.assertEqual(me.status_code, status.HTTP_200_OK)
        self.assertEqual(me.json()['profile']['full_name'], 'Ada')

        out = self.client.post(reverse('api-sign-out'))
        self.assertEqual(out.status_code, status.HTTP_204_NO_CONTENT)
        again = self.client.get(reverse('api-current-user'))
        self.assertEqual(again.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_sign_in_invalid_credentials(self):
        make_user('ada@example.com')
        resp = self.client.post(reverse('api-sign-in'), {
            'email': 'ada@example.com', 'password': 'wrong-pass',
        }, format='json')
        self.assertEqual(resp.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(resp.json()['code'], 'invalid_credentials')

    def test_me_requires_auth(self):
        resp = self.client.get(reverse('api-current-user'))
        self.assertIn(resp.status_code, (status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN))

    def test_role_change_superadmin_only(self):
        target = make_user('citizen@example.com')
        admin = make_user('admin@example.com', role=Role.ADMIN)
        boss = make_user('boss@example.com', role=Role.SUPERADMIN)
        url = reverse('api-profile-role', args=[target.pk])
        payload = {'role': 'admin', 'department': 'water_supply'}

        self.client.force_authenticate(user=admin)
        resp = self.client.patch(url, payload, format='json')
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)

        self.client.force_authenticate(user=boss)
        resp2 = self.client.patch(url, payload, format='json')
        self.assertEqual(resp2.status_code, status.HTTP_200_OK)
        target.profile.refresh_from_db()
        self.assertEqual(target.profile.role, Role.ADMIN)
        self.assertEqual(target.profile.department, 'water_supply')


class AuthPageTest(TestCase):
    def test_renders_sign_in_by_default(self):
        resp = self.client.get(reverse('auth'))
        self.assertEqual(resp.status_code, 200)
        self.assertContains(resp, 'Welcome Back')
        self.assertNotContains(resp, 'name="full_name"')

    def test_mode_query_selects_sign_up(self):
        resp = self.client.get(reverse('auth') + '?mode=signup')
        self.assertContains(resp, 'Join Civic Connect')
        self.assertContains(resp, 'name="full_name"')

    def test_signed_in_visitor_redirected_home(self):
        self.client.force_login(make_user('ada@example.com'))
        resp = self.client.get(reverse('auth'))
        self.assertRedirects(resp, reverse('home'), fetch_redirect_response=False)

    def test_toggle_clears_entered_values(self):
        resp = self.client.post(reverse('auth'), {
            'mode': 'signin', 'email': 'ada@example.com', 'password': 'x', 'toggle': '',
        })
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.context['mode'], 'signup')
        self.assertEqual(resp.context['values']['email'], '')

    def test_validation_errors_rendered(self):
        resp = self.client.post(reverse('auth'), {'mode': 'signin', 'email': 'bad', 'password': '123456'})
        self.assertEqual(resp.context['errors'], {'email': EMAIL_ERROR})
        self.assertContains(resp, EMAIL_ERROR)
        # email kept, password never echoed
        self.assertEqual(resp.context['values']['email'], 'bad')
        self.assertEqual(resp.context['values']['password'], '')

    def test_failed_sign_in_flashes_notice(self):
        make_user('ada@example.com')
        resp = self.client.post(reverse('auth'), {
            'mode': 'signin', 'email': 'ada@example.com', 'password': 'wrong-pass',
        })
        self.assertEqual(resp.status_code, 200)
        self.assertContains(resp, 'Invalid email or password. Please try again.')

    def test_sign_in_logs_in_and_redirects(self):
        make_user('ada@example.com')
        resp = self.client.post(reverse('auth'), {
            'mode': 'signin', 'email': 'ada@example.com', 'password': 'secret123',
        })
        self.assertRedirects(resp, reverse('home'), fetch_redirect_response=False)
        self.assertIn('_auth_user_id', self.client.session)

    def test_sign_up_creates_account(self):
        resp = self.client.post(reverse('auth'), {
            'mode': 'signup', 'email': 'new@example.com', 'password': 'secret123', 'full_name': 'New Person',
        })
        self.assertRedirects(resp, reverse('home'), fetch_redirect_response=False)
        self.assertEqual(User.objects.get(email='new@example.com').profile.full_name, 'New Person')

    def test_sign_out(self):
        self.client.force_login(make_user('ada@example.com'))
        resp = self.client.post(reverse('logout'))
        self.assertRedirects(resp, reverse('home'), fetch_redirect_response=False)
        self.assertNotIn('_auth_user_id', self.client.session)
