"""
Per-locale UI dictionaries.

Bundles are JSON files in `locales/` named after the locale code. All of them
are read once at import into `DICTIONARIES`; lookups never touch the disk.
Unknown locales fall back to English.
"""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Mapping

from backend.web.locale import SupportedLocale


LOCALES_DIR = Path(__file__).parent / "locales"
FALLBACK_LOCALE = SupportedLocale.EN


def _load_bundles() -> Dict[str, Dict[str, Any]]:
    bundles: Dict[str, Dict[str, Any]] = {}
    for loc in SupportedLocale:
        path = LOCALES_DIR / f"{loc.value}.json"
        with path.open(encoding="utf-8") as fh:
            bundles[loc.value] = json.load(fh)
    return bundles


DICTIONARIES: Mapping[str, Dict[str, Any]] = _load_bundles()


def get_dictionary(locale: SupportedLocale | str | None) -> Dict[str, Any]:
    code = getattr(locale, "value", locale) or ""
    return DICTIONARIES.get(str(code).lower(), DICTIONARIES[FALLBACK_LOCALE.value])


def _lookup(bundle: Mapping[str, Any], key: str) -> Any:
    node: Any = bundle
    for part in key.split("."):
        if not isinstance(node, Mapping) or part not in node:
            return None
        node = node[part]
    return node


def translate(dictionary: Mapping[str, Any], key: str, **params: Any) -> str:
    """Dotted-key lookup (``"home.title"``) with ``{name}`` interpolation.

    Missing keys fall back to the English bundle, then to the key itself.
    """
    value = _lookup(dictionary, key)
    if not isinstance(value, str):
        value = _lookup(DICTIONARIES[FALLBACK_LOCALE.value], key)
    if not isinstance(value, str):
        return key
    return value.format(**params) if params else value


__all__ = ["DICTIONARIES", "FALLBACK_LOCALE", "get_dictionary", "translate"]
