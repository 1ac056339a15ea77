"""
i18n package

Active-locale state and likely-subtag expansion used when switching subsites.
"""

from .locale import LIKELY_SUBTAGS, get_locale, likely_locale, set_locale

__all__ = [
    "LIKELY_SUBTAGS",
    "get_locale",
    "likely_locale",
    "set_locale",
]
