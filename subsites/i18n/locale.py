"""
Locale helpers

The active locale is request/task scoped. Switching subsites re-derives it
from the subsite's language, expanding bare language codes to their most
likely full locale ("de" → "de_DE").
"""

from __future__ import annotations

from contextvars import ContextVar

from subsites.config import settings

# ── Constants ─────────────────────────────────────────────────────────────────

# Bare language code → most likely full locale
LIKELY_SUBTAGS: dict[str, str] = {
    "ar": "ar_EG",
    "da": "da_DK",
    "de": "de_DE",
    "en": "en_US",
    "es": "es_ES",
    "fi": "fi_FI",
    "fr": "fr_FR",
    "it": "it_IT",
    "ja": "ja_JP",
    "mi": "mi_NZ",
    "nb": "nb_NO",
    "nl": "nl_NL",
    "pl": "pl_PL",
    "pt": "pt_BR",
    "ru": "ru_RU",
    "sv": "sv_SE",
    "zh": "zh_CN",
}

_current_locale: ContextVar[str | None] = ContextVar("current_locale", default=None)


# ── Public helpers ────────────────────────────────────────────────────────────


def get_locale() -> str:
    """Return the active locale, falling back to settings.default_locale."""
    return _current_locale.get() or settings.default_locale


def set_locale(locale: str) -> None:
    _current_locale.set(locale)


def likely_locale(language: str) -> str | None:
    """Expand a language to a full locale.

    Args:
        language: Either a bare code ("de") or a full locale ("de_AT", "de-AT").

    Returns:
        The full locale, or None when the code is unknown.
    """
    if not language:
        return None
    normalized = language.replace("-", "_")
    if "_" in normalized:
        base, region = normalized.split("_", 1)
        return f"{base.lower()}_{region.upper()}"
    return LIKELY_SUBTAGS.get(normalized.lower())
