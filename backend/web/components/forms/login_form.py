"""
Login form for agents and administrators.
"""
from typing import Any, Mapping, Optional

from ..base import LocalizedComponent, flash_html
from .fields import SubmitButton, TextInputField


class LoginForm(LocalizedComponent):
    def __init__(
        self,
        dictionary: Mapping[str, Any],
        locale: str,
        *,
        email: str = "",
        error: Optional[str] = None,
    ) -> None:
        super().__init__(dictionary, locale)
        self.email = email
        self.error = error

    def render(self) -> str:
        email = TextInputField("email", self.t("fields.email"), required=True)
        password = TextInputField("password", self.t("fields.password"), required=True)
        return f"""
        <form method="post" action="{self.escape(self.href("/login"))}" class="login-form">
            {flash_html(self.error, kind="error")}
            {email.render(value=self.email, input_type="email", autocomplete="username")}
            {password.render(input_type="password", autocomplete="current-password")}
            <div class="form-actions">{SubmitButton(self.t("login.submit")).render()}</div>
        </form>"""
