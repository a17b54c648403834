"""
Form field components.

Small building blocks that keep label, input, help and error markup
consistent across the public and dashboard forms.
"""

from typing import Iterable, Optional, Tuple

from ..base import Component


class FormField(Component):
    """Wrapper that renders label, input slot, help, and error text."""

    def __init__(
        self,
        field_id: str,
        label: str,
        *,
        required: bool = False,
        help_text: Optional[str] = None,
        error_text: Optional[str] = None,
    ) -> None:
        self.field_id = field_id
        self.label = label
        self.required = required
        self.help_text = help_text
        self.error_text = error_text

    def render(self, input_html: str) -> str:
        state_class = " form-field--error" if self.error_text else ""
        required_marker = (
            '<span class="form-required" aria-hidden="true">*</span>'
            if self.required
            else ""
        )
        help_html = (
            f'<p class="form-help" id="{self.field_id}-help">{self.escape(self.help_text)}</p>'
            if self.help_text
            else ""
        )
        error_html = (
            f'<p class="form-error" role="alert" id="{self.field_id}-error">{self.escape(self.error_text)}</p>'
            if self.error_text
            else ""
        )
        label_attrs = self.attributes(for_=self.field_id, class_="form-label")
        return (
            f'<div class="form-field{state_class}">'
            f"<label {label_attrs}>{self.escape(self.label)}{required_marker}</label>"
            f"{input_html}{help_html}{error_html}"
            "</div>"
        )

    def _aria(self) -> dict:
        return {
            "aria_describedby": f"{self.field_id}-help" if self.help_text else None,
            "aria_invalid": "true" if self.error_text else "false",
        }


class TextInputField(FormField):
    """Single-line input (`text`, `email`, `password`, `number`, `date`)."""

    def render(
        self,
        *,
        value: Optional[str] = "",
        input_type: str = "text",
        autocomplete: Optional[str] = None,
        placeholder: Optional[str] = None,
        **attrs: str,
    ) -> str:
        input_attrs = self.attributes(
            id=self.field_id,
            name=self.field_id,
            type=input_type,
            value=value if input_type != "password" else None,
            autocomplete=autocomplete,
            placeholder=placeholder,
            required=self.required,
            class_="form-input",
            **self._aria(),
            **attrs,
        )
        return super().render(f"<input {input_attrs}>")


class TextAreaField(FormField):
    def render(self, value: Optional[str] = "", rows: int = 4, **attrs: str) -> str:
        textarea_attrs = self.attributes(
            id=self.field_id,
            name=self.field_id,
            rows=str(rows),
            required=self.required,
            class_="form-input",
            **self._aria(),
            **attrs,
        )
        return super().render(f"<textarea {textarea_attrs}>{self.escape(value)}</textarea>")


class SelectField(FormField):
    """Dropdown; `options` are (value, label) pairs."""

    def render(self, options: Iterable[Tuple[str, str]], selected: Optional[str] = None, **attrs: str) -> str:
        opts = []
        for value, label in options:
            opt_attrs = self.attributes(value=value, selected=(value == selected))
            opts.append(f"<option {opt_attrs}>{self.escape(label)}</option>")
        select_attrs = self.attributes(
            id=self.field_id,
            name=self.field_id,
            required=self.required,
            class_="form-input",
            **self._aria(),
            **attrs,
        )
        return super().render(f"<select {select_attrs}>{''.join(opts)}</select>")


class SubmitButton(Component):
    def __init__(self, label: str, *, variant: str = "primary") -> None:
        self.label = label
        self.variant = variant

    def render(self) -> str:
        return f'<button type="submit" class="btn btn-{self.escape(self.variant)}">{self.escape(self.label)}</button>'
