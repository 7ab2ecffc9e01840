"""Navbar model built from a session, independent of any request."""
from dataclasses import dataclass
from typing import Optional, Tuple

from django.urls import reverse

from users.capabilities import ADMIN_PANEL, has_capability


@dataclass(frozen=True)
class NavLink:
    label: str
    path: str
    icon: str
    active: bool = False


@dataclass(frozen=True)
class UserMenu:
    initial: str
    display_name: str
    email: Optional[str]
    role_label: Optional[str]


@dataclass(frozen=True)
class Navigation:
    links: Tuple[NavLink, ...] = ()
    user_menu: Optional[UserMenu] = None

    @property
    def is_authenticated(self):
        return self.user_menu is not None

    @property
    def active_link(self):
        return next((link for link in self.links if link.active), None)


# (label, url name, icon)
PRIMARY_LINKS = (
    ('Dashboard', 'home', 'home'),
    ('Report Issue', 'create-report', 'plus'),
    ('My Reports', 'my-reports', 'file-text'),
)
ADMIN_LINK = ('Admin Panel', 'admin-panel', 'settings')


def avatar_initial(full_name, email):
    for candidate in (full_name, email):
        if candidate:
            return candidate[0]
    return 'U'


def build_navigation(session, current_path):
    """Links and user menu for ``session`` with ``current_path`` highlighted.

    Anonymous sessions get no links and no menu; the template then shows
    the sign-in entry points.
    """
    if not session.is_authenticated:
        return Navigation()

    specs = list(PRIMARY_LINKS)
    if has_capability(session.role, ADMIN_PANEL):
        specs.append(ADMIN_LINK)

    links = []
    for label, url_name, icon in specs:
        path = reverse(url_name)
        links.append(NavLink(label=label, path=path, icon=icon, active=(path == current_path)))

    full_name = getattr(session.profile, 'full_name', None)
    menu = UserMenu(
        initial=avatar_initial(full_name, session.email),
        display_name=full_name or 'User',
        email=session.email,
        role_label=session.role.capitalize() if session.role else None,
    )
    return Navigation(links=tuple(links), user_menu=menu)
