import logging

from django.contrib import messages
from django.shortcuts import redirect, render
from django.views import View

from .forms import AuthFormState, AuthMode
from .session import SessionProvider

logger = logging.getLogger(__name__)


def _flash(request, notice):
    level = messages.ERROR if notice.is_error else messages.SUCCESS
    messages.add_message(request, level, str(notice), extra_tags=notice.variant)


class AuthPageView(View):
    """Sign-in / sign-up page.

    The mode travels in a hidden ``mode`` field; posting ``toggle`` flips it
    and re-renders an empty form.
    """
    template_name = 'users/auth.html'
    session_provider_class = SessionProvider

    def dispatch(self, request, *args, **kwargs):
        self.session_provider = self.session_provider_class(request)
        if self.session_provider.current().is_authenticated:
            return redirect('home')
        return super().dispatch(request, *args, **kwargs)

    def get(self, request):
        state = AuthFormState(mode=AuthMode.parse(request.GET.get('mode')))
        return self.render_state(state)

    def post(self, request):
        state = AuthFormState(
            mode=AuthMode.parse(request.POST.get('mode')),
            values={field: request.POST.get(field, '') for field in AuthFormState.FIELDS},
        )
        if 'toggle' in request.POST:
            state.toggle_mode()
            return self.render_state(state)

        notice = state.submit(self.session_provider.gateway())
        if notice is not None:
            _flash(request, notice)
        if state.succeeded:
            return redirect('home')
        return self.render_state(state)

    def render_state(self, state):
        # never echo the password back into the page
        values = dict(state.values, password='')
        return render(self.request, self.template_name, {
            'form_state': state,
            'values': values,
            'errors': state.errors,
            'mode': state.mode.value,
        })


class SignOutPageView(View):
    session_provider_class = SessionProvider

    def post(self, request):
        self.session_provider_class(request).gateway().sign_out()
        messages.info(request, 'You have been signed out.')
        return redirect('home')
