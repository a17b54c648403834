"""
Locale resolver and redirect decision (pure functions).

Covers Accept-Language negotiation (weights, primary subtags, malformed input),
the "has locale" rule, slash collapsing and redirect idempotence.
"""
from __future__ import annotations

import pytest

from backend.web.locale import (
    PASS_THROUGH,
    SupportedLocale,
    is_excluded_path,
    locale_redirect,
    parse_accept_language,
    resolve_locale,
)


def test_parse_orders_by_weight_and_keeps_header_order_on_ties():
    tags = parse_accept_language("fr;q=0.5, en;q=0.9, zh-CN, de;q=0.9")
    assert tags == ["zh-CN", "en", "de", "fr"]


def test_parse_drops_zero_weight_and_malformed_entries():
    tags = parse_accept_language("en;q=0, zh;q=abc, ;q=0.3, de;q=0.4, 12@@")
    assert tags == ["de"]


@pytest.mark.parametrize(
    "header, expected",
    [
        ("en-US,en;q=0.9", SupportedLocale.EN),
        ("zh-CN,zh;q=0.9,en;q=0.8", SupportedLocale.ZH),
        ("zh-Hant-TW", SupportedLocale.ZH),
        ("fr-FR, en;q=0.5", SupportedLocale.EN),
        ("EN", SupportedLocale.EN),
    ],
)
def test_resolve_matches_exact_then_primary_subtag(header, expected):
    assert resolve_locale({"accept-language": header}) is expected


def test_underscore_tags_are_normalized_instead_of_dropped():
    assert parse_accept_language("fr, en_US;q=0.8") == ["fr", "en_US"]
    # Default is zh, so an `en` result proves the underscore tag matched
    assert resolve_locale({"accept-language": "fr, en_US;q=0.8"}) is SupportedLocale.EN


def test_resolve_first_matching_preference_wins_over_later_exact_match():
    # en-GB matches `en` by primary subtag before the lower-weighted exact `zh`
    assert resolve_locale({"Accept-Language": "en-GB, zh;q=0.8"}) is SupportedLocale.EN


@pytest.mark.parametrize("header", [None, "", "   ", ";;;", "fr, de", "en;q=0"])
def test_resolve_falls_back_to_default(header):
    headers = {} if header is None else {"accept-language": header}
    assert resolve_locale(headers) is SupportedLocale.ZH


def test_resolve_wildcard_returns_default():
    assert resolve_locale({"accept-language": "*"}) is SupportedLocale.ZH


def test_header_lookup_is_case_insensitive_for_plain_dicts():
    assert resolve_locale({"ACCEPT-LANGUAGE": "en"}) is SupportedLocale.EN


def test_default_locale_follows_env(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("DEFAULT_LOCALE", "en")
    assert resolve_locale({}) is SupportedLocale.EN


def test_resolve_never_raises_on_broken_headers():
    class Exploding(dict):
        def get(self, *_args, **_kwargs):
            raise RuntimeError("boom")

    assert resolve_locale(Exploding()) is SupportedLocale.ZH


@pytest.mark.parametrize("path", ["/en", "/zh", "/en/", "/zh/dashboard", "/en/dashboard/admin/user-management"])
def test_paths_with_locale_pass_through(path):
    assert locale_redirect(path, {"accept-language": "en"}) == PASS_THROUGH


@pytest.mark.parametrize(
    "path, header, target",
    [
        ("/", "en", "/en"),
        ("/", None, "/zh"),
        ("/about", "en-US", "/en/about"),
        ("//about", "en", "/en/about"),
        ("/a//b///c", "zh", "/zh/a/b/c"),
        ("/english", "en", "/en/english"),
        ("/enx/page", "zh-TW", "/zh/enx/page"),
        ("/EN/page", "en", "/en/EN/page"),
    ],
)
def test_locale_less_paths_redirect_to_prefixed_path(path, header, target):
    headers = {"accept-language": header} if header else {}
    decision = locale_redirect(path, headers)
    assert decision.is_redirect
    assert decision.location == target


@pytest.mark.parametrize("path", ["/", "/about", "//x//y", "/dashboard/admin"])
def test_redirect_target_is_a_fixed_point(path):
    first = locale_redirect(path, {"accept-language": "en"})
    assert locale_redirect(first.location, {"accept-language": "zh"}) == PASS_THROUGH


@pytest.mark.parametrize(
    "path, excluded",
    [
        ("/static/css/freightwise.css", True),
        ("/api/prices/public", True),
        ("/api", True),
        ("/images/logo.png", True),
        ("/favicon.ico", True),
        ("/health", True),
        ("/apidocs", False),
        ("/statics", False),
        ("/healthz", False),
        ("/", False),
    ],
)
def test_exclusion_filter_is_segment_aware(path, excluded):
    assert is_excluded_path(path) is excluded
