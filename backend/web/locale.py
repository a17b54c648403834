"""
Locale resolution and locale-prefix redirects for page routes.

Every page lives under `/{lang}/...`. A request for a path without a supported
locale segment is redirected to the same path prefixed with the visitor's
best-matching locale (from Accept-Language), or the default locale.

Rules:
    - "Has locale": the path equals `/{l}` or starts with `/{l}/` for some
      supported `l` (case-sensitive, as generated by the app itself).
    - Target: `/{l}` for `/`, else `/{l}{path}`; runs of slashes collapse to one.
    - A redirect target always has a locale, so redirects never chain.
    - Excluded paths (static assets, the JSON API, health probe) bypass the
      middleware entirely; see `EXCLUDED_PREFIXES` / `EXCLUDED_PATHS`.

Pure functions only; the FastAPI middleware in `main.py` applies the decision.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import logging
import os
import re
from typing import List, Mapping, Optional, Tuple


logger = logging.getLogger("freightwise.web")


class SupportedLocale(str, Enum):
    EN = "en"
    ZH = "zh"


DEFAULT_LOCALE = SupportedLocale.ZH
SUPPORTED_LOCALE_CODES: Tuple[str, ...] = tuple(loc.value for loc in SupportedLocale)

# Path segments served without a locale prefix
EXCLUDED_PREFIXES: Tuple[str, ...] = ("/static", "/api", "/images")
EXCLUDED_PATHS: Tuple[str, ...] = ("/favicon.ico", "/health")

_SLASH_RUN_RE = re.compile(r"/{2,}")
_TAG_RE = re.compile(r"^(?:[A-Za-z]{1,8}(?:[-_][A-Za-z0-9]{1,8})*|\*)$")
_Q_RE = re.compile(r"^q=(0(?:\.\d{0,3})?|1(?:\.0{0,3})?)$", re.IGNORECASE)


def default_locale() -> SupportedLocale:
    """Configured default (DEFAULT_LOCALE env), falling back to `zh`."""
    raw = (os.getenv("DEFAULT_LOCALE") or "").strip().lower()
    try:
        return SupportedLocale(raw) if raw else DEFAULT_LOCALE
    except ValueError:
        return DEFAULT_LOCALE


def normalize_locale(value: Optional[str]) -> Optional[SupportedLocale]:
    """Map a language tag onto a supported locale (exact, then primary subtag)."""
    tag = (value or "").strip().lower().replace("_", "-")
    if not tag:
        return None
    if tag in SUPPORTED_LOCALE_CODES:
        return SupportedLocale(tag)
    primary = tag.split("-", 1)[0]
    if primary in SUPPORTED_LOCALE_CODES:
        return SupportedLocale(primary)
    return None


def parse_accept_language(header: Optional[str]) -> List[str]:
    """Return language tags ordered by preference (q desc, header order on ties).

    Entries with q=0, malformed tags or malformed q-values are dropped.
    """
    if not header:
        return []
    weighted: List[Tuple[float, int, str]] = []
    for index, part in enumerate(header.split(",")):
        pieces = [p.strip() for p in part.split(";")]
        tag = pieces[0]
        if not tag or not _TAG_RE.match(tag):
            continue
        quality = 1.0
        malformed = False
        for param in pieces[1:]:
            if not param.lower().startswith("q="):
                continue
            match = _Q_RE.match(param.replace(" ", ""))
            if not match:
                malformed = True
                break
            quality = float(match.group(1))
        if malformed or quality <= 0:
            continue
        weighted.append((-quality, index, tag))
    weighted.sort()
    return [tag for _q, _i, tag in weighted]


def _header(headers: Mapping[str, str], name: str) -> Optional[str]:
    getter = getattr(headers, "get", None)
    value = getter(name) if getter else None
    if value is not None:
        return value
    for key, val in headers.items():
        if key.lower() == name:
            return val
    return None


def resolve_locale(headers: Mapping[str, str]) -> SupportedLocale:
    """Best supported locale for the request's Accept-Language; never raises."""
    fallback = default_locale()
    try:
        header = _header(headers, "accept-language")
        for tag in parse_accept_language(header):
            if tag == "*":
                return fallback
            # Exact tag first, then primary subtag, per preference entry
            match = normalize_locale(tag)
            if match is not None:
                return match
    except Exception as exc:
        logger.debug("locale.negotiation_failed reason=%s", exc.__class__.__name__)
    return fallback


def path_has_locale(pathname: str) -> bool:
    return any(pathname == f"/{code}" or pathname.startswith(f"/{code}/") for code in SUPPORTED_LOCALE_CODES)


def locale_of_path(pathname: str) -> Optional[SupportedLocale]:
    for code in SUPPORTED_LOCALE_CODES:
        if pathname == f"/{code}" or pathname.startswith(f"/{code}/"):
            return SupportedLocale(code)
    return None


def is_excluded_path(pathname: str) -> bool:
    if pathname in EXCLUDED_PATHS:
        return True
    return any(pathname == prefix or pathname.startswith(prefix + "/") for prefix in EXCLUDED_PREFIXES)


def localized_path(locale: SupportedLocale | str, pathname: str) -> str:
    code = getattr(locale, "value", locale)
    target = f"/{code}" if pathname == "/" else f"/{code}{pathname}"
    return _SLASH_RUN_RE.sub("/", target)


@dataclass(frozen=True)
class RedirectDecision:
    """Pass-through (`location is None`) or redirect to a locale-prefixed path."""

    location: Optional[str] = None

    @property
    def is_redirect(self) -> bool:
        return self.location is not None


PASS_THROUGH = RedirectDecision()


def locale_redirect(pathname: str, headers: Mapping[str, str]) -> RedirectDecision:
    """Decide whether `pathname` needs a locale prefix.

    Exclusions are not evaluated here; callers skip excluded paths before
    asking for a decision.
    """
    if path_has_locale(pathname):
        return PASS_THROUGH
    return RedirectDecision(location=localized_path(resolve_locale(headers), pathname or "/"))


__all__ = [
    "SupportedLocale",
    "DEFAULT_LOCALE",
    "SUPPORTED_LOCALE_CODES",
    "EXCLUDED_PREFIXES",
    "EXCLUDED_PATHS",
    "RedirectDecision",
    "PASS_THROUGH",
    "default_locale",
    "normalize_locale",
    "parse_accept_language",
    "resolve_locale",
    "path_has_locale",
    "locale_of_path",
    "is_excluded_path",
    "localized_path",
    "locale_redirect",
]
