"""
Dashboard announcement form.
"""
from typing import Any, Mapping, Optional

from ..base import LocalizedComponent
from .fields import SubmitButton, TextAreaField, TextInputField


class AnnouncementForm(LocalizedComponent):
    def __init__(
        self,
        dictionary: Mapping[str, Any],
        locale: str,
        *,
        values: Optional[Mapping[str, Any]] = None,
    ) -> None:
        super().__init__(dictionary, locale)
        self.values = values or {}

    def render(self) -> str:
        title = TextInputField("title", self.t("fields.title"), required=True)
        content = TextAreaField("content", self.t("fields.content"), required=True)
        return f"""
        <form method="post" action="{self.escape(self.href("/dashboard/admin/announcement-management"))}" class="announcement-form">
            {title.render(value=self.values.get("title", ""), minlength="5")}
            {content.render(value=self.values.get("content", ""), rows=5, minlength="10")}
            <div class="form-actions">{SubmitButton(self.t("admin.create_announcement")).render()}</div>
        </form>"""
