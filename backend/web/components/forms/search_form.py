"""
Price search form (public home page and internal dashboard search).
"""
from typing import Any, Mapping, Optional

from ..base import LocalizedComponent
from .fields import SubmitButton, TextInputField


class PriceSearchForm(LocalizedComponent):
    """GET form; results render below it on the same page."""

    def __init__(
        self,
        dictionary: Mapping[str, Any],
        locale: str,
        *,
        action_path: str,
        values: Optional[Mapping[str, str]] = None,
    ) -> None:
        super().__init__(dictionary, locale)
        self.action_path = action_path
        self.values = values or {}

    def render(self) -> str:
        origin = TextInputField("origin", self.t("fields.origin"))
        destination = TextInputField("destination", self.t("fields.destination"))
        return f"""
        <form method="get" action="{self.escape(self.href(self.action_path))}" class="search-form" role="search">
            {origin.render(value=self.values.get("origin", ""))}
            {destination.render(value=self.values.get("destination", ""))}
            <div class="form-actions">{SubmitButton(self.t("home.search")).render()}</div>
        </form>"""
