"""
Layout component: wraps page content into a complete HTML document.
"""

from typing import Any, Dict, Mapping, Optional

from .base import LocalizedComponent
from .navigation import Navigation


class Layout(LocalizedComponent):
    """Main layout component that assembles the complete page"""

    def __init__(
        self,
        title: str,
        content: str,
        *,
        dictionary: Mapping[str, Any],
        locale: str,
        user: Optional[Dict[str, Any]] = None,
        current_path: str = "/",
    ):
        """
        Args:
            title: Page title (will be escaped)
            content: Main content HTML (pre-rendered components)
            dictionary: Locale bundle used for chrome labels
            locale: Active locale code; also the document language
            user: Request-scoped user dict; None for anonymous visitors
            current_path: Current URL path for active navigation highlighting
        """
        super().__init__(dictionary, locale)
        self.title = title
        self.content = content
        self.user = user
        self.current_path = current_path

    def render(self) -> str:
        nav = Navigation(self.dictionary, self.locale, self.user, self.current_path)
        shell_class = self.classes("page-shell", with_sidebar=bool(self.user))
        return f"""<!DOCTYPE html>
<html lang="{self.escape(self.locale)}">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{self.escape(self.title)} - {self.escape(self.t("app.name"))}</title>
    <link rel="stylesheet" href="/static/css/freightwise.css?v=1">
</head>
<body>
    {nav.render_topbar()}
    <div class="{shell_class}">
        {nav.render_sidebar() if self.user else ""}
        <main id="main-content" class="main-content" role="main">
            {self.content}
        </main>
    </div>
    <footer class="content-footer" role="contentinfo">
        <p class="text-muted">{self.escape(self.t("app.footer"))}</p>
    </footer>
</body>
</html>"""
