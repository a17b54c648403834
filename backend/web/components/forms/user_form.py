"""
Dashboard user creation form (admin only).
"""
from typing import Any, Mapping, Optional

from ..base import LocalizedComponent
from .fields import SelectField, SubmitButton, TextInputField


class UserCreateForm(LocalizedComponent):
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
        role_options = [(key, self.t(f"roles.{key}")) for key in ("agent", "admin")]
        fields = [
            TextInputField("name", self.t("fields.name"), required=True).render(value=v.get("name", ""), minlength="2"),
            TextInputField("email", self.t("fields.email"), required=True).render(
                value=v.get("email", ""), input_type="email", autocomplete="off"
            ),
            TextInputField("password", self.t("fields.password"), required=True).render(
                input_type="password", autocomplete="new-password", minlength="6"
            ),
            SelectField("role", self.t("fields.role"), required=True).render(role_options, selected=v.get("role", "agent")),
        ]
        return f"""
        <form method="post" action="{self.escape(self.href("/dashboard/admin/user-management"))}" class="user-form">
            {''.join(fields)}
            <div class="form-actions">{SubmitButton(self.t("admin.create_user")).render()}</div>
        </form>"""
