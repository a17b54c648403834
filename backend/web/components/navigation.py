"""
Navigation component for FreightWise.

Public visitors get a top bar (home, login, language switch). Signed-in users
additionally get the dashboard sidebar whose entries are filtered by the
user's permissions; visibility never grants access, the routes check again.
"""

from typing import Any, Dict, List, Mapping, Optional, Tuple

from backend.identity_access.domain import FeatureScope, PermissionAction, has_permission
from backend.web.locale import SupportedLocale

from .base import LocalizedComponent

# (path suffix under /{lang}, label key, required permission or None)
NavEntry = Tuple[str, str, Optional[Tuple[FeatureScope, PermissionAction]]]

DASHBOARD_ENTRIES: List[NavEntry] = [
    ("/dashboard", "nav.dashboard", None),
    ("/dashboard/internal-prices", "nav.internal_prices", (FeatureScope.PRICES, PermissionAction.VIEW)),
    ("/dashboard/admin/rfq-management", "nav.rfq_management", (FeatureScope.RFQS, PermissionAction.VIEW)),
    ("/dashboard/admin/manage-prices", "nav.manage_prices", (FeatureScope.PRICES, PermissionAction.CREATE)),
    ("/dashboard/admin/user-management", "nav.user_management", (FeatureScope.USERS, PermissionAction.VIEW)),
    ("/dashboard/admin/announcement-management", "nav.announcements", (FeatureScope.ANNOUNCEMENTS, PermissionAction.CREATE)),
]


def visible_entries(user: Optional[Mapping[str, Any]]) -> List[NavEntry]:
    """Dashboard entries the user may see (empty for anonymous visitors)."""
    if not user:
        return []
    return [
        entry for entry in DASHBOARD_ENTRIES
        if entry[2] is None or has_permission(user, entry[2][0], entry[2][1])
    ]


class Navigation(LocalizedComponent):
    def __init__(
        self,
        dictionary: Mapping[str, Any],
        locale: str,
        user: Optional[Dict[str, Any]] = None,
        current_path: str = "/",
    ) -> None:
        super().__init__(dictionary, locale)
        self.user = user
        self.current_path = current_path

    def render(self) -> str:
        return self.render_topbar() + (self.render_sidebar() if self.user else "")

    def render_topbar(self) -> str:
        auth_link = (
            self._logout_form()
            if self.user
            else f'<a class="topbar-link" href="{self.href("/login")}">{self.escape(self.t("nav.login"))}</a>'
        )
        dashboard_link = (
            f'<a class="topbar-link" href="{self.href("/dashboard")}">{self.escape(self.t("nav.dashboard"))}</a>'
            if self.user
            else ""
        )
        return f"""
    <header class="topbar" role="banner">
        <a class="brand" href="{self.href()}">{self.escape(self.t("app.name"))}</a>
        <nav class="topbar-nav" aria-label="{self.escape(self.t("nav.home"))}">
            <a class="topbar-link" href="{self.href()}">{self.escape(self.t("nav.home"))}</a>
            {dashboard_link}
            {auth_link}
            {self._language_switcher()}
        </nav>
    </header>"""

    def render_sidebar(self) -> str:
        active = self._active_suffix()
        links = []
        for suffix, label_key, _perm in visible_entries(self.user):
            is_active = suffix == active
            links.append(
                f'<a {self.attributes(href=self.href(suffix), class_=self.classes("sidebar-link", active=is_active), aria_current="page" if is_active else None)}>'
                f"{self.escape(self.t(label_key))}</a>"
            )
        name = (self.user or {}).get("name", "")
        role = (self.user or {}).get("role", "")
        return f"""
    <aside class="sidebar" id="sidebar" aria-label="{self.escape(self.t("nav.dashboard"))}">
        <nav class="sidebar-nav">
            {''.join(links)}
        </nav>
        <div class="sidebar-footer">
            <div class="user-name">{self.escape(name)}</div>
            <div class="user-role">{self.escape(self.t(f'roles.{role}'))}</div>
        </div>
    </aside>"""

    def _active_suffix(self) -> str:
        """Best prefix match of the current path against the dashboard entries."""
        prefix = f"/{self.locale}"
        path = self.current_path[len(prefix):] if self.current_path.startswith(prefix) else self.current_path
        best = ""
        for suffix, _label, _perm in DASHBOARD_ENTRIES:
            if path == suffix:
                return suffix
            if path.startswith(suffix + "/") and len(suffix) > len(best):
                best = suffix
        return best

    def _logout_form(self) -> str:
        return (
            f'<form method="post" action="{self.href("/logout")}" class="inline-form">'
            f'<button type="submit" class="topbar-link link-button">{self.escape(self.t("nav.logout"))}</button>'
            "</form>"
        )

    def _language_switcher(self) -> str:
        prefix = f"/{self.locale}"
        rest = self.current_path[len(prefix):] if self.current_path.startswith(prefix) else ""
        options = []
        for loc in SupportedLocale:
            is_current = loc.value == self.locale
            options.append(
                f'<a {self.attributes(href=f"/{loc.value}{rest}", hreflang=loc.value, class_=self.classes("lang-link", active=is_current), aria_current="true" if is_current else None)}>'
                f"{self.escape(loc.value.upper())}</a>"
            )
        return f'<span class="lang-switcher" aria-label="{self.escape(self.t("nav.language"))}">{" ".join(options)}</span>'
