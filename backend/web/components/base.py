"""
Base component for server-rendered FreightWise pages.

Components are plain Python objects that return HTML strings. Every dynamic
value goes through `escape` (text) or `attributes` (attribute values).
"""

from typing import Any, Mapping, Optional
import html

from backend.web.i18n import translate


class Component:
    """Base class for all UI components."""

    def render(self) -> str:
        raise NotImplementedError("Subclasses must implement render()")

    @staticmethod
    def escape(text: Optional[Any]) -> str:
        """HTML-escape `text`; None renders as an empty string."""
        return html.escape(str(text)) if text is not None else ""

    @staticmethod
    def classes(*args: str, **conditionals: bool) -> str:
        """Space-separated class string; keyword classes are added when truthy.

        Example:
            >>> Component.classes("btn", "btn-danger", disabled=True, active=False)
            "btn btn-danger disabled"
        """
        classes = list(args)
        classes.extend(key for key, value in conditionals.items() if value)
        return " ".join(classes)

    @staticmethod
    def attributes(**attrs: Any) -> str:
        """Build an HTML attribute string.

        Trailing underscores are stripped (`class_` -> `class`), inner
        underscores become hyphens (`data_id` -> `data-id`). True renders a
        boolean attribute; False/None omit the attribute.
        """
        result = []
        for key, value in attrs.items():
            if key.endswith("_"):
                key = key[:-1]
            else:
                key = key.replace("_", "-")

            if value is True:
                result.append(key)
            elif value is not False and value is not None:
                result.append(f'{key}="{html.escape(str(value))}"')

        return " ".join(result)


class LocalizedComponent(Component):
    """Component that renders labels from a locale dictionary."""

    def __init__(self, dictionary: Mapping[str, Any], locale: str) -> None:
        self.dictionary = dictionary
        self.locale = locale

    def t(self, key: str, **params: Any) -> str:
        return translate(self.dictionary, key, **params)

    def href(self, path: str = "") -> str:
        """Locale-prefixed link target (`/zh` + path)."""
        return f"/{self.locale}{path}"


def flash_html(message: Optional[str], *, kind: str = "info") -> str:
    if not message:
        return ""
    return f'<div class="alert alert-{html.escape(kind)}" role="status">{html.escape(message)}</div>'


__all__ = ["Component", "LocalizedComponent", "flash_html"]
