"""
Dashboard price forms: single price creation and CSV import.
"""
from typing import Any, Mapping, Optional

from ..base import LocalizedComponent
from .fields import FormField, SelectField, SubmitButton, TextAreaField, TextInputField

_ACTION = "/dashboard/admin/manage-prices"


class PriceCreateForm(LocalizedComponent):
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
        v = self.values
        type_options = [(key, self.t(f"price_types.{key}")) for key in ("public", "internal")]
        fields = [
            TextInputField("origin", self.t("fields.origin"), required=True).render(value=v.get("origin", "")),
            TextInputField("destination", self.t("fields.destination"), required=True).render(value=v.get("destination", "")),
            TextInputField("amount", self.t("fields.amount"), required=True).render(
                value=v.get("amount", ""), input_type="number", min="0", step="0.01"
            ),
            TextInputField("currency", self.t("fields.currency"), required=True).render(
                value=v.get("currency", "USD"), maxlength="3"
            ),
            SelectField("type", self.t("fields.type"), required=True).render(type_options, selected=v.get("type", "public")),
            TextInputField("valid_from", self.t("fields.valid_from")).render(value=v.get("valid_from", ""), input_type="date"),
            TextInputField("valid_to", self.t("fields.valid_to")).render(value=v.get("valid_to", ""), input_type="date"),
            TextInputField("carrier", self.t("fields.carrier")).render(value=v.get("carrier", "")),
            TextAreaField("notes", self.t("fields.notes")).render(value=v.get("notes", ""), rows=2),
        ]
        return f"""
        <form method="post" action="{self.escape(self.href(_ACTION))}" class="price-form">
            {''.join(fields)}
            <div class="form-actions">{SubmitButton(self.t("admin.create_price")).render()}</div>
        </form>"""


class PriceImportForm(LocalizedComponent):
    def render(self) -> str:
        field = FormField("csv_file", self.t("admin.import_prices"), required=True, help_text=self.t("admin.import_help"))
        input_attrs = self.attributes(
            id="csv_file", name="csv_file", type="file", accept=".csv,text/csv", required=True, aria_describedby="csv_file-help"
        )
        return f"""
        <form method="post" action="{self.escape(self.href(_ACTION + '/import'))}" enctype="multipart/form-data" class="price-import-form">
            {field.render(f'<input {input_attrs}>')}
            <div class="form-actions">{SubmitButton(self.t("admin.import_submit"), variant="secondary").render()}</div>
        </form>"""
