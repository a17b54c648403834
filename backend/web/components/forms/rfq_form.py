"""
Public request-for-quote form.
"""
from typing import Any, Mapping, Optional

from ..base import LocalizedComponent
from .fields import SelectField, SubmitButton, TextAreaField, TextInputField


class RfqForm(LocalizedComponent):
    def __init__(
        self,
        dictionary: Mapping[str, Any],
        locale: str,
        *,
        values: Optional[Mapping[str, Any]] = None,
        errors: Optional[Mapping[str, str]] = None,
    ) -> None:
        super().__init__(dictionary, locale)
        self.values = values or {}
        self.errors = errors or {}

    def _error(self, field: str) -> Optional[str]:
        code = self.errors.get(field)
        return self.t("admin.error", detail=code) if code else None

    def render(self) -> str:
        v = self.values
        freight_options = [(key, self.t(f"freight_types.{key}")) for key in ("", "sea", "air", "land")]
        fields = [
            TextInputField("name", self.t("fields.name"), required=True, error_text=self._error("name")).render(
                value=v.get("name", ""), autocomplete="name"
            ),
            TextInputField("email", self.t("fields.email"), required=True, error_text=self._error("email")).render(
                value=v.get("email", ""), input_type="email", autocomplete="email"
            ),
            TextInputField("company", self.t("fields.company"), error_text=self._error("company")).render(
                value=v.get("company", ""), autocomplete="organization"
            ),
            TextInputField("origin", self.t("fields.origin"), required=True, error_text=self._error("origin")).render(
                value=v.get("origin", "")
            ),
            TextInputField("destination", self.t("fields.destination"), required=True, error_text=self._error("destination")).render(
                value=v.get("destination", "")
            ),
            TextInputField("weight", self.t("fields.weight"), error_text=self._error("weight")).render(
                value=v.get("weight", ""), input_type="number", min="0", step="any"
            ),
            SelectField("freight_type", self.t("fields.freight_type"), error_text=self._error("freight_type")).render(
                freight_options, selected=v.get("freight_type", "")
            ),
            TextAreaField("message", self.t("fields.message"), error_text=self._error("message")).render(
                value=v.get("message", "")
            ),
        ]
        return f"""
        <form method="post" action="{self.escape(self.href("/rfq"))}" class="rfq-form">
            {''.join(fields)}
            <div class="form-actions">{SubmitButton(self.t("home.rfq_submit")).render()}</div>
        </form>"""
