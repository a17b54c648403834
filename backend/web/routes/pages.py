"""
Server-rendered pages under `/{lang}`.

Why:
    The public site (price search, RFQ form) and the internal dashboard are
    plain HTML forms rendered by the component layer. Write handlers follow
    Post/Redirect/Get: they redirect (303) back to the page with a `notice`
    or `error` query parameter that the page turns into a flash message.

Security:
    - Dashboard pages require a session; the middleware already redirects
      anonymous visitors to `/{lang}/login`, and every handler checks again.
    - Each dashboard page and form handler checks its own permission; hidden
      navigation entries are a convenience, not a guard.
    - Form posts must be same-origin (`is_trusted_write`).
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Mapping, Optional, Tuple
from urllib.parse import urlencode

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import HTMLResponse, RedirectResponse, Response

from backend.freight.models import PriceType
from backend.freight.models import ValidationError as FreightValidationError
from backend.freight.rfq import RfqSubmissionError, submit_rfq
from backend.identity_access.domain import FeatureScope, PermissionAction, has_permission
from backend.identity_access.users import (
    EmailTakenError,
    ValidationError as UserValidationError,
    authenticate,
    create_user,
    delete_user,
    list_users,
    update_user,
)
from backend.web import wiring
from backend.web.auth_utils import (
    SESSION_COOKIE_NAME,
    SESSION_TTL_SECONDS,
    clear_session_cookie,
    set_session_cookie,
)
from backend.web.components import (
    AnnouncementForm,
    AnnouncementList,
    Layout,
    LoginForm,
    PriceCreateForm,
    PriceImportForm,
    PriceSearchForm,
    PriceTable,
    RfqForm,
    RfqTable,
    UserCreateForm,
    UserTable,
    flash_html,
)
from backend.web.components.base import Component
from backend.web.config import current_environment
from backend.web.i18n import get_dictionary, translate
from backend.web.locale import SUPPORTED_LOCALE_CODES
from backend.web.routes.prices import MAX_IMPORT_BYTES
from backend.web.routes.security import current_user, is_trusted_write


pages_router = APIRouter(tags=["Pages"])
logger = logging.getLogger("freightwise.web")

_RFQ_FIELDS = ("name", "email", "company", "origin", "destination", "weight", "freight_type", "message")
_PRICE_FIELDS = ("origin", "destination", "amount", "currency", "type", "valid_from", "valid_to", "carrier", "notes")
_NOTICES = frozenset({"saved", "deleted", "imported"})

MANAGE_PRICES = "/dashboard/admin/manage-prices"
USER_MANAGEMENT = "/dashboard/admin/user-management"
ANNOUNCEMENT_MANAGEMENT = "/dashboard/admin/announcement-management"
RFQ_MANAGEMENT = "/dashboard/admin/rfq-management"


# --- Helpers ---------------------------------------------------------------------

def _context(lang: str) -> Tuple[str, Dict[str, Any]]:
    """Return (locale, dictionary); unknown locale segments are a 404."""
    if lang not in SUPPORTED_LOCALE_CODES:
        raise HTTPException(status_code=404)
    return lang, get_dictionary(lang)


def _layout_response(
    request: Request,
    locale: str,
    dictionary: Mapping[str, Any],
    *,
    title: str,
    content: str,
    status_code: int = 200,
) -> HTMLResponse:
    layout = Layout(
        title,
        content,
        dictionary=dictionary,
        locale=locale,
        user=current_user(request),
        current_path=request.url.path,
    )
    return HTMLResponse(content=layout.render(), status_code=status_code, headers={"Cache-Control": "private, no-store"})


def _redirect(locale: str, suffix: str, **params: Any) -> RedirectResponse:
    query = urlencode({k: v for k, v in params.items() if v is not None})
    url = f"/{locale}{suffix}" + (f"?{query}" if query else "")
    return RedirectResponse(url=url, status_code=303)


def _section(title: str, body: str, *, css: str = "card") -> str:
    return f'<section class="{css}"><h2>{Component.escape(title)}</h2>{body}</section>'


def _page_header(title: str, subtitle: str = "") -> str:
    sub = f'<p class="text-muted">{Component.escape(subtitle)}</p>' if subtitle else ""
    return f'<header class="page-header"><h1>{Component.escape(title)}</h1>{sub}</header>'


def _flash_from_query(request: Request, dictionary: Mapping[str, Any]) -> str:
    notice = request.query_params.get("notice")
    error = request.query_params.get("error")
    html = ""
    if notice in _NOTICES:
        html += flash_html(translate(dictionary, f"admin.{notice}", count=request.query_params.get("count", "0")), kind="success")
    if error:
        html += flash_html(translate(dictionary, "admin.error", detail=error[:64]), kind="error")
    return html


def _forbidden(request: Request, locale: str, dictionary: Mapping[str, Any]) -> HTMLResponse:
    message = translate(dictionary, "errors.forbidden")
    return _layout_response(
        request,
        locale,
        dictionary,
        title=message,
        content=flash_html(message, kind="error"),
        status_code=403,
    )


def _page_guard(
    request: Request,
    locale: str,
    dictionary: Mapping[str, Any],
    scope: Optional[FeatureScope] = None,
    action: Optional[PermissionAction] = None,
) -> Tuple[Optional[dict], Optional[Response]]:
    """Return (user, error_response) for dashboard pages."""
    user = current_user(request)
    if not user:
        return None, RedirectResponse(url=f"/{locale}/login", status_code=302)
    if scope is not None and action is not None and not has_permission(user, scope, action):
        return user, _forbidden(request, locale, dictionary)
    return user, None


def _write_guard(
    request: Request,
    locale: str,
    dictionary: Mapping[str, Any],
    scope: FeatureScope,
    action: PermissionAction,
) -> Tuple[Optional[dict], Optional[Response]]:
    user, err = _page_guard(request, locale, dictionary, scope, action)
    if err:
        return user, err
    if not is_trusted_write(request):
        return user, _forbidden(request, locale, dictionary)
    return user, None


def _form_values(form: Mapping[str, Any], fields: Tuple[str, ...]) -> Dict[str, str]:
    return {name: str(form.get(name) or "").strip() for name in fields}


# --- Public pages ----------------------------------------------------------------

def _render_home(
    request: Request,
    locale: str,
    d: Mapping[str, Any],
    *,
    origin: Optional[str] = None,
    destination: Optional[str] = None,
    rfq_values: Optional[Mapping[str, Any]] = None,
    rfq_errors: Optional[Mapping[str, str]] = None,
    rfq_notice: str = "",
    status_code: int = 200,
) -> HTMLResponse:
    prices = wiring.get_repo().search_prices(
        price_type=PriceType.PUBLIC, origin=origin or None, destination=destination or None
    )
    search = PriceSearchForm(d, locale, action_path="", values={"origin": origin or "", "destination": destination or ""})
    results = PriceTable(d, locale, [p.to_dict() for p in prices])
    rfq_form = RfqForm(d, locale, values=rfq_values, errors=rfq_errors)
    content = (
        _page_header(translate(d, "home.title"), translate(d, "home.subtitle"))
        + _section(translate(d, "home.search_title"), search.render() + results.render())
        + _section(
            translate(d, "home.rfq_title"),
            f'<p class="text-muted">{Component.escape(translate(d, "home.rfq_intro"))}</p>{rfq_notice}{rfq_form.render()}',
            css="card rfq-card",
        )
    )
    return _layout_response(request, locale, d, title=translate(d, "home.title"), content=content, status_code=status_code)


@pages_router.get("/{lang}", response_class=HTMLResponse)
async def home_page(request: Request, lang: str, origin: Optional[str] = None, destination: Optional[str] = None):
    """Public landing page: public price search and the RFQ form."""
    locale, d = _context(lang)
    return _render_home(request, locale, d, origin=origin, destination=destination)


@pages_router.post("/{lang}/rfq", response_class=HTMLResponse)
async def submit_rfq_form(request: Request, lang: str):
    """Store an RFQ from the home page form and show the confirmation inline."""
    locale, d = _context(lang)
    if not is_trusted_write(request):
        return _forbidden(request, locale, d)
    form = await request.form()
    values = _form_values(form, _RFQ_FIELDS)
    try:
        outcome = await asyncio.to_thread(submit_rfq, wiring.get_repo(), wiring.get_confirmation_adapter(), values)
    except FreightValidationError as exc:
        return _render_home(request, locale, d, rfq_values=values, rfq_errors={exc.field: exc.code}, status_code=400)
    except RfqSubmissionError:
        notice = flash_html(translate(d, "errors.rfq_failed"), kind="error")
        return _render_home(request, locale, d, rfq_values=values, rfq_notice=notice, status_code=502)
    notice = (
        '<div class="alert alert-success rfq-confirmation" role="status">'
        f"<strong>{Component.escape(translate(d, 'home.rfq_success_title'))}</strong>"
        f"<p>{Component.escape(outcome.message)}</p>"
        f'<p class="submission-id">{Component.escape(translate(d, "fields.submission_id"))}: '
        f"<code>{Component.escape(outcome.submission_id)}</code></p>"
        "</div>"
    )
    return _render_home(request, locale, d, rfq_notice=notice)


@pages_router.get("/{lang}/login", response_class=HTMLResponse)
async def login_page(request: Request, lang: str):
    locale, d = _context(lang)
    if current_user(request):
        return RedirectResponse(url=f"/{locale}/dashboard", status_code=303)
    content = _page_header(translate(d, "login.title"), translate(d, "login.subtitle")) + LoginForm(d, locale).render()
    return _layout_response(request, locale, d, title=translate(d, "login.title"), content=content)


@pages_router.post("/{lang}/login", response_class=HTMLResponse)
async def login_submit(request: Request, lang: str):
    """Authenticate and start a session; failures re-render the form with 401."""
    locale, d = _context(lang)
    if not is_trusted_write(request):
        return _forbidden(request, locale, d)
    form = await request.form()
    email = str(form.get("email") or "").strip()
    password = str(form.get("password") or "")
    user = await asyncio.to_thread(authenticate, wiring.get_user_store(), email, password)
    if user is None:
        logger.info("auth.login.failed")
        content = (
            _page_header(translate(d, "login.title"), translate(d, "login.subtitle"))
            + LoginForm(d, locale, email=email, error=translate(d, "login.invalid")).render()
        )
        return _layout_response(request, locale, d, title=translate(d, "login.title"), content=content, status_code=401)
    rec = wiring.get_session_store().create(user_id=user.id, ttl_seconds=SESSION_TTL_SECONDS)
    logger.info("auth.login.succeeded user_id=%s", user.id)
    resp = RedirectResponse(url=f"/{locale}/dashboard", status_code=303)
    set_session_cookie(resp, rec.session_id, environment=current_environment(), max_age=SESSION_TTL_SECONDS)
    return resp


@pages_router.post("/{lang}/logout")
async def logout_submit(request: Request, lang: str):
    locale, d = _context(lang)
    if not is_trusted_write(request):
        return _forbidden(request, locale, d)
    sid = request.cookies.get(SESSION_COOKIE_NAME)
    if sid:
        wiring.get_session_store().delete(sid)
    resp = RedirectResponse(url=f"/{locale}", status_code=303)
    clear_session_cookie(resp, environment=current_environment())
    return resp


# --- Dashboard -------------------------------------------------------------------

@pages_router.get("/{lang}/dashboard", response_class=HTMLResponse)
async def dashboard_page(request: Request, lang: str):
    """Overview: announcements and the cheapest internal rates the user may see."""
    locale, d = _context(lang)
    user, err = _page_guard(request, locale, d)
    if err:
        return err
    repo = wiring.get_repo()
    content = _page_header(translate(d, "dashboard.welcome", name=user.get("name", "")))
    if has_permission(user, FeatureScope.ANNOUNCEMENTS, PermissionAction.VIEW):
        items = [a.to_dict() for a in repo.list_announcements()[:5]]
        content += _section(translate(d, "dashboard.announcements"), AnnouncementList(d, locale, items).render())
    if has_permission(user, FeatureScope.PRICES, PermissionAction.VIEW):
        prices = [p.to_dict() for p in repo.search_prices(price_type=PriceType.INTERNAL)[:5]]
        content += _section(translate(d, "dashboard.latest_prices"), PriceTable(d, locale, prices).render())
    return _layout_response(request, locale, d, title=translate(d, "nav.dashboard"), content=content)


@pages_router.get("/{lang}/dashboard/internal-prices", response_class=HTMLResponse)
async def internal_prices_page(
    request: Request, lang: str, origin: Optional[str] = None, destination: Optional[str] = None
):
    locale, d = _context(lang)
    _user, err = _page_guard(request, locale, d, FeatureScope.PRICES, PermissionAction.VIEW)
    if err:
        return err
    prices = wiring.get_repo().search_prices(
        price_type=PriceType.INTERNAL, origin=origin or None, destination=destination or None
    )
    search = PriceSearchForm(
        d,
        locale,
        action_path="/dashboard/internal-prices",
        values={"origin": origin or "", "destination": destination or ""},
    )
    table = PriceTable(d, locale, [p.to_dict() for p in prices], show_notes=True)
    content = _page_header(translate(d, "nav.internal_prices")) + _section(
        translate(d, "dashboard.internal_search"), search.render() + table.render()
    )
    return _layout_response(request, locale, d, title=translate(d, "nav.internal_prices"), content=content)


# --- Admin: prices ---------------------------------------------------------------

@pages_router.get("/{lang}" + MANAGE_PRICES, response_class=HTMLResponse)
async def manage_prices_page(request: Request, lang: str):
    locale, d = _context(lang)
    _user, err = _page_guard(request, locale, d, FeatureScope.PRICES, PermissionAction.CREATE)
    if err:
        return err
    prices = [p.to_dict() for p in wiring.get_repo().list_all_prices()]
    content = (
        _page_header(translate(d, "nav.manage_prices"))
        + _flash_from_query(request, d)
        + _section(translate(d, "admin.create_price"), PriceCreateForm(d, locale).render())
        + _section(translate(d, "admin.import_prices"), PriceImportForm(d, locale).render())
        + _section(translate(d, "nav.manage_prices"), PriceTable(d, locale, prices, manage=True).render())
    )
    return _layout_response(request, locale, d, title=translate(d, "nav.manage_prices"), content=content)


@pages_router.post("/{lang}" + MANAGE_PRICES)
async def manage_prices_create(request: Request, lang: str):
    locale, d = _context(lang)
    _user, err = _write_guard(request, locale, d, FeatureScope.PRICES, PermissionAction.CREATE)
    if err:
        return err
    form = await request.form()
    values = {k: (v or None) for k, v in _form_values(form, _PRICE_FIELDS).items()}
    try:
        wiring.get_repo().create_price(values)
    except FreightValidationError as exc:
        return _redirect(locale, MANAGE_PRICES, error=exc.code)
    return _redirect(locale, MANAGE_PRICES, notice="saved")


@pages_router.post("/{lang}" + MANAGE_PRICES + "/import")
async def manage_prices_import(request: Request, lang: str):
    """CSV upload from the import form; all rows are stored or none."""
    locale, d = _context(lang)
    _user, err = _write_guard(request, locale, d, FeatureScope.PRICES, PermissionAction.CREATE)
    if err:
        return err
    form = await request.form()
    upload = form.get("csv_file")
    if upload is None or isinstance(upload, str):
        return _redirect(locale, MANAGE_PRICES, error="missing_file")
    data = await upload.read(MAX_IMPORT_BYTES + 1)
    if len(data) > MAX_IMPORT_BYTES:
        return _redirect(locale, MANAGE_PRICES, error="file_too_large")
    try:
        created = wiring.get_repo().import_prices_csv(data.decode("utf-8-sig"))
    except UnicodeDecodeError:
        return _redirect(locale, MANAGE_PRICES, error="invalid_encoding")
    except FreightValidationError as exc:
        return _redirect(locale, MANAGE_PRICES, error=f"{exc.field}: {exc.code}")
    return _redirect(locale, MANAGE_PRICES, notice="imported", count=len(created))


@pages_router.post("/{lang}" + MANAGE_PRICES + "/{price_id}/delete")
async def manage_prices_delete(request: Request, lang: str, price_id: str):
    locale, d = _context(lang)
    _user, err = _write_guard(request, locale, d, FeatureScope.PRICES, PermissionAction.DELETE)
    if err:
        return err
    if not wiring.get_repo().delete_price(price_id):
        return _redirect(locale, MANAGE_PRICES, error="not_found")
    return _redirect(locale, MANAGE_PRICES, notice="deleted")


# --- Admin: users ----------------------------------------------------------------

@pages_router.get("/{lang}" + USER_MANAGEMENT, response_class=HTMLResponse)
async def user_management_page(request: Request, lang: str):
    locale, d = _context(lang)
    user, err = _page_guard(request, locale, d, FeatureScope.USERS, PermissionAction.VIEW)
    if err:
        return err
    users = [u.to_public_dict() for u in list_users(wiring.get_user_store())]
    table = UserTable(
        d,
        locale,
        users,
        current_user_id=user.get("id"),
        can_edit=has_permission(user, FeatureScope.USERS, PermissionAction.EDIT),
        can_delete=has_permission(user, FeatureScope.USERS, PermissionAction.DELETE),
    )
    content = _page_header(translate(d, "nav.user_management")) + _flash_from_query(request, d)
    if has_permission(user, FeatureScope.USERS, PermissionAction.CREATE):
        content += _section(translate(d, "admin.create_user"), UserCreateForm(d, locale).render())
    content += _section(translate(d, "nav.user_management"), table.render())
    return _layout_response(request, locale, d, title=translate(d, "nav.user_management"), content=content)


@pages_router.post("/{lang}" + USER_MANAGEMENT)
async def user_management_create(request: Request, lang: str):
    locale, d = _context(lang)
    _user, err = _write_guard(request, locale, d, FeatureScope.USERS, PermissionAction.CREATE)
    if err:
        return err
    form = await request.form()
    values = _form_values(form, ("email", "name", "role"))
    values["password"] = str(form.get("password") or "")
    if len(values["password"]) < 6:
        return _redirect(locale, USER_MANAGEMENT, error="password_too_short")
    try:
        create_user(wiring.get_user_store(), values)
    except EmailTakenError:
        return _redirect(locale, USER_MANAGEMENT, error="email_taken")
    except UserValidationError as exc:
        return _redirect(locale, USER_MANAGEMENT, error=exc.code)
    return _redirect(locale, USER_MANAGEMENT, notice="saved")


@pages_router.post("/{lang}" + USER_MANAGEMENT + "/{user_id}/role")
async def user_management_role(request: Request, lang: str, user_id: str):
    """Change a role; the user's permissions reset to the new role's defaults."""
    locale, d = _context(lang)
    _user, err = _write_guard(request, locale, d, FeatureScope.USERS, PermissionAction.EDIT)
    if err:
        return err
    form = await request.form()
    try:
        updated = update_user(wiring.get_user_store(), user_id, {"role": str(form.get("role") or "")})
    except UserValidationError as exc:
        return _redirect(locale, USER_MANAGEMENT, error=exc.code)
    if updated is None:
        return _redirect(locale, USER_MANAGEMENT, error="not_found")
    return _redirect(locale, USER_MANAGEMENT, notice="saved")


@pages_router.post("/{lang}" + USER_MANAGEMENT + "/{user_id}/delete")
async def user_management_delete(request: Request, lang: str, user_id: str):
    locale, d = _context(lang)
    user, err = _write_guard(request, locale, d, FeatureScope.USERS, PermissionAction.DELETE)
    if err:
        return err
    if user.get("id") == user_id:
        return _redirect(locale, USER_MANAGEMENT, error="cannot_delete_self")
    if not delete_user(wiring.get_user_store(), user_id):
        return _redirect(locale, USER_MANAGEMENT, error="not_found")
    wiring.get_session_store().delete_for_user(user_id)
    return _redirect(locale, USER_MANAGEMENT, notice="deleted")


# --- Admin: announcements --------------------------------------------------------

@pages_router.get("/{lang}" + ANNOUNCEMENT_MANAGEMENT, response_class=HTMLResponse)
async def announcement_management_page(request: Request, lang: str):
    locale, d = _context(lang)
    user, err = _page_guard(request, locale, d, FeatureScope.ANNOUNCEMENTS, PermissionAction.CREATE)
    if err:
        return err
    items = [a.to_dict() for a in wiring.get_repo().list_announcements()]
    can_delete = has_permission(user, FeatureScope.ANNOUNCEMENTS, PermissionAction.DELETE)
    content = (
        _page_header(translate(d, "nav.announcements"))
        + _flash_from_query(request, d)
        + _section(translate(d, "admin.create_announcement"), AnnouncementForm(d, locale).render())
        + _section(translate(d, "dashboard.announcements"), AnnouncementList(d, locale, items, manage=can_delete).render())
    )
    return _layout_response(request, locale, d, title=translate(d, "nav.announcements"), content=content)


@pages_router.post("/{lang}" + ANNOUNCEMENT_MANAGEMENT)
async def announcement_management_create(request: Request, lang: str):
    locale, d = _context(lang)
    user, err = _write_guard(request, locale, d, FeatureScope.ANNOUNCEMENTS, PermissionAction.CREATE)
    if err:
        return err
    form = await request.form()
    values = _form_values(form, ("title", "content"))
    try:
        wiring.get_repo().create_announcement(
            title=values["title"],
            content=values["content"],
            author_id=str(user.get("id")),
            author_name=user.get("name"),
        )
    except FreightValidationError as exc:
        return _redirect(locale, ANNOUNCEMENT_MANAGEMENT, error=exc.code)
    return _redirect(locale, ANNOUNCEMENT_MANAGEMENT, notice="saved")


@pages_router.post("/{lang}" + ANNOUNCEMENT_MANAGEMENT + "/{announcement_id}/delete")
async def announcement_management_delete(request: Request, lang: str, announcement_id: str):
    locale, d = _context(lang)
    _user, err = _write_guard(request, locale, d, FeatureScope.ANNOUNCEMENTS, PermissionAction.DELETE)
    if err:
        return err
    if not wiring.get_repo().delete_announcement(announcement_id):
        return _redirect(locale, ANNOUNCEMENT_MANAGEMENT, error="not_found")
    return _redirect(locale, ANNOUNCEMENT_MANAGEMENT, notice="deleted")


# --- Admin: RFQs -----------------------------------------------------------------

@pages_router.get("/{lang}" + RFQ_MANAGEMENT, response_class=HTMLResponse)
async def rfq_management_page(request: Request, lang: str):
    locale, d = _context(lang)
    user, err = _page_guard(request, locale, d, FeatureScope.RFQS, PermissionAction.VIEW)
    if err:
        return err
    rows = [r.to_dict() for r in wiring.get_repo().list_rfqs()]
    table = RfqTable(d, locale, rows, can_edit=has_permission(user, FeatureScope.RFQS, PermissionAction.EDIT))
    content = _page_header(translate(d, "nav.rfq_management")) + _flash_from_query(request, d) + table.render()
    return _layout_response(request, locale, d, title=translate(d, "nav.rfq_management"), content=content)


@pages_router.post("/{lang}" + RFQ_MANAGEMENT + "/{rfq_id}/status")
async def rfq_management_status(request: Request, lang: str, rfq_id: str):
    locale, d = _context(lang)
    _user, err = _write_guard(request, locale, d, FeatureScope.RFQS, PermissionAction.EDIT)
    if err:
        return err
    form = await request.form()
    try:
        updated = wiring.get_repo().update_rfq_status(rfq_id, str(form.get("status") or ""))
    except FreightValidationError as exc:
        return _redirect(locale, RFQ_MANAGEMENT, error=exc.code)
    if updated is None:
        return _redirect(locale, RFQ_MANAGEMENT, error="not_found")
    return _redirect(locale, RFQ_MANAGEMENT, notice="saved")
