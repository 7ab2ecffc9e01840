from users.session import SessionProvider

from .navigation import build_navigation


def navigation(request):
    session = SessionProvider(request).current()
    return {
        'session': session,
        'navigation': build_navigation(session, request.path),
    }
