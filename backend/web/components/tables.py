"""
Table and list components for prices, announcements, users and RFQs.

All components take the JSON-shaped dicts produced by the domain objects
(`Price.to_dict()`, `User.to_public_dict()`, ...), so pages and APIs share one
representation.
"""

from typing import Any, Iterable, List, Mapping, Optional

from .base import LocalizedComponent

Row = Mapping[str, Any]


def _format_amount(amount: Any, currency: Any) -> str:
    try:
        return f"{float(amount):,.2f} {currency or ''}".strip()
    except (TypeError, ValueError):
        return f"{amount} {currency or ''}".strip()


class _Table(LocalizedComponent):
    empty_key = ""

    def __init__(self, dictionary: Mapping[str, Any], locale: str, rows: Iterable[Row]) -> None:
        super().__init__(dictionary, locale)
        self.rows: List[Row] = list(rows)

    def _table(self, headers: List[str], body_rows: List[str], css: str) -> str:
        if not body_rows:
            return f'<p class="empty-state">{self.escape(self.t(self.empty_key))}</p>'
        head = "".join(f'<th scope="col">{self.escape(self.t(h))}</th>' for h in headers)
        return (
            f'<div class="table-wrap"><table class="data-table {css}">'
            f"<thead><tr>{head}</tr></thead>"
            f"<tbody>{''.join(body_rows)}</tbody>"
            "</table></div>"
        )

    def _delete_form(self, action_path: str) -> str:
        return (
            f'<form method="post" action="{self.escape(self.href(action_path))}" class="inline-form">'
            f'<button type="submit" class="btn btn-danger btn-small">{self.escape(self.t("admin.delete"))}</button>'
            "</form>"
        )


class PriceTable(_Table):
    """Price rows; `manage=True` adds the type column and delete buttons."""

    empty_key = "home.no_results"

    def __init__(
        self,
        dictionary: Mapping[str, Any],
        locale: str,
        rows: Iterable[Row],
        *,
        manage: bool = False,
        show_notes: bool = False,
    ) -> None:
        super().__init__(dictionary, locale, rows)
        self.manage = manage
        self.show_notes = show_notes

    def render(self) -> str:
        headers = ["fields.origin", "fields.destination", "fields.amount", "fields.carrier", "fields.valid_from", "fields.valid_to"]
        if self.show_notes:
            headers.append("fields.notes")
        if self.manage:
            headers += ["fields.type", "fields.actions"]
        body = []
        for p in self.rows:
            cells = [
                p.get("origin"),
                p.get("destination"),
                _format_amount(p.get("amount"), p.get("currency")),
                p.get("carrier") or "",
                p.get("valid_from") or "",
                p.get("valid_to") or "",
            ]
            if self.show_notes:
                cells.append(p.get("notes") or "")
            html_cells = "".join(f"<td>{self.escape(c)}</td>" for c in cells)
            if self.manage:
                html_cells += f"<td>{self.escape(self.t('price_types.' + str(p.get('type', ''))))}</td>"
                delete_path = f"/dashboard/admin/manage-prices/{p.get('id')}/delete"
                html_cells += f"<td>{self._delete_form(delete_path)}</td>"
            body.append(f'<tr data-price-id="{self.escape(p.get("id"))}">{html_cells}</tr>')
        return self._table(headers, body, "price-table")


class AnnouncementList(_Table):
    empty_key = "dashboard.no_announcements"

    def __init__(
        self,
        dictionary: Mapping[str, Any],
        locale: str,
        rows: Iterable[Row],
        *,
        manage: bool = False,
    ) -> None:
        super().__init__(dictionary, locale, rows)
        self.manage = manage

    def render(self) -> str:
        if not self.rows:
            return f'<p class="empty-state">{self.escape(self.t(self.empty_key))}</p>'
        items = []
        for a in self.rows:
            actions = (
                self._delete_form(f"/dashboard/admin/announcement-management/{a.get('id')}/delete")
                if self.manage
                else ""
            )
            items.append(
                f'<article class="announcement" data-announcement-id="{self.escape(a.get("id"))}">'
                f"<h3>{self.escape(a.get('title'))}</h3>"
                f'<p class="announcement-meta text-muted">{self.escape(a.get("author_name") or "")} '
                f'<time datetime="{self.escape(a.get("created_at"))}">{self.escape(str(a.get("created_at") or "")[:10])}</time></p>'
                f'<div class="announcement-content">{self.escape(a.get("content"))}</div>'
                f"{actions}</article>"
            )
        return f'<div class="announcement-list">{"".join(items)}</div>'


class UserTable(_Table):
    """User rows with role change and delete controls.

    The signed-in user's own row has no delete button.
    """

    empty_key = "admin.no_users"

    def __init__(
        self,
        dictionary: Mapping[str, Any],
        locale: str,
        rows: Iterable[Row],
        *,
        current_user_id: Optional[str] = None,
        can_edit: bool = False,
        can_delete: bool = False,
    ) -> None:
        super().__init__(dictionary, locale, rows)
        self.current_user_id = current_user_id
        self.can_edit = can_edit
        self.can_delete = can_delete

    def _role_form(self, user: Row) -> str:
        options = "".join(
            f'<option {self.attributes(value=role, selected=(role == user.get("role")))}>{self.escape(self.t("roles." + role))}</option>'
            for role in ("agent", "admin")
        )
        action = self.href(f"/dashboard/admin/user-management/{user.get('id')}/role")
        return (
            f'<form method="post" action="{self.escape(action)}" class="inline-form">'
            f'<select name="role" class="form-input form-input--small" aria-label="{self.escape(self.t("fields.role"))}">{options}</select>'
            f'<button type="submit" class="btn btn-secondary btn-small">{self.escape(self.t("admin.update"))}</button>'
            "</form>"
        )

    def render(self) -> str:
        headers = ["fields.name", "fields.email", "fields.role"]
        if self.can_edit or self.can_delete:
            headers.append("fields.actions")
        body = []
        for u in self.rows:
            cells = (
                f"<td>{self.escape(u.get('name'))}</td>"
                f"<td>{self.escape(u.get('email'))}</td>"
                f"<td>{self.escape(self.t('roles.' + str(u.get('role', ''))))}</td>"
            )
            if self.can_edit or self.can_delete:
                actions = self._role_form(u) if self.can_edit else ""
                if self.can_delete and u.get("id") != self.current_user_id:
                    actions += self._delete_form(f"/dashboard/admin/user-management/{u.get('id')}/delete")
                cells += f"<td>{actions}</td>"
            body.append(f'<tr data-user-id="{self.escape(u.get("id"))}">{cells}</tr>')
        return self._table(headers, body, "user-table")


class RfqTable(_Table):
    """Submitted RFQs; `can_edit` renders the status dropdown per row."""

    empty_key = "admin.no_rfqs"
    STATUSES = ("New", "Contacted", "Quoted", "Closed")

    def __init__(
        self,
        dictionary: Mapping[str, Any],
        locale: str,
        rows: Iterable[Row],
        *,
        can_edit: bool = False,
    ) -> None:
        super().__init__(dictionary, locale, rows)
        self.can_edit = can_edit

    def _status_cell(self, rfq: Row) -> str:
        status = str(rfq.get("status", ""))
        if not self.can_edit:
            return self.escape(self.t("rfq_status." + status))
        options = "".join(
            f'<option {self.attributes(value=s, selected=(s == status))}>{self.escape(self.t("rfq_status." + s))}</option>'
            for s in self.STATUSES
        )
        action = self.href(f"/dashboard/admin/rfq-management/{rfq.get('id')}/status")
        return (
            f'<form method="post" action="{self.escape(action)}" class="inline-form">'
            f'<select name="status" class="form-input form-input--small" aria-label="{self.escape(self.t("fields.status"))}">{options}</select>'
            f'<button type="submit" class="btn btn-secondary btn-small">{self.escape(self.t("admin.update"))}</button>'
            "</form>"
        )

    def render(self) -> str:
        headers = [
            "fields.submission_id",
            "fields.submitted_at",
            "fields.name",
            "fields.company",
            "fields.email",
            "fields.origin",
            "fields.destination",
            "fields.weight",
            "fields.freight_type",
            "fields.message",
            "fields.status",
        ]
        body = []
        for r in self.rows:
            weight = r.get("weight")
            cells: List[Any] = [
                r.get("submission_id"),
                str(r.get("submitted_at") or "")[:16].replace("T", " "),
                r.get("name"),
                r.get("company") or "",
                r.get("email"),
                r.get("origin"),
                r.get("destination"),
                "" if weight is None else weight,
                self.t("freight_types." + str(r.get("freight_type") or "")),
                r.get("message") or "",
            ]
            html_cells = "".join(f"<td>{self.escape(c)}</td>" for c in cells)
            html_cells += f"<td>{self._status_cell(r)}</td>"
            body.append(f'<tr data-rfq-id="{self.escape(r.get("id"))}">{html_cells}</tr>')
        return self._table(headers, body, "rfq-table")


__all__ = ["AnnouncementList", "PriceTable", "RfqTable", "UserTable"]
