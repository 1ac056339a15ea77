"""
Domain pattern matching.

Patterns are plain host names, optionally with a whole-label wildcard at
either end:

    example.org        exact host
    *.example.org      any host ending in ".example.org"
    example.*          any host starting with "example."

A ``*`` matches any run of characters, so ``one.*`` matches
``one.anything.org``. Matching is case-insensitive and ignores ports.

Unless strict subdomain matching is on, a leading ``www.`` is stripped from
both the host and the stored pattern before comparing, so
``www.example.org`` and ``example.org`` are the same site whichever one was
registered. Stripping only ever removes a literal ``www.`` label; it never
rewrites a wildcard.
"""

from __future__ import annotations

import re
from functools import lru_cache

from subsites.config import settings
from subsites.exceptions import ValidationError

WILDCARD = "*"
WWW_PREFIX = "www."

_LABEL_RE = re.compile(r"^[a-z0-9_](?:[a-z0-9_-]*[a-z0-9_])?$")


def _strict(strict: bool | None) -> bool:
    return settings.strict_subdomain_matching if strict is None else strict


def strip_www(value: str) -> str:
    if value.startswith(WWW_PREFIX):
        return value[len(WWW_PREFIX):]
    return value


def normalize_host(host: str, strict: bool | None = None) -> str:
    """Lower-case *host*, drop any port and trailing dot, strip ``www.`` unless strict."""
    host = host.strip().lower()
    if host.startswith("["):
        # IPv6 literal, keep as-is apart from the port
        host = host.split("]", 1)[0] + "]"
    else:
        host = host.split(":", 1)[0]
    host = host.rstrip(".")
    if not _strict(strict):
        host = strip_www(host)
    return host


def normalize_domain(pattern: str, strict: bool | None = None) -> str:
    """Normalize a stored domain pattern the same way hosts are normalized."""
    pattern = pattern.strip().lower().rstrip(".")
    if not _strict(strict):
        pattern = strip_www(pattern)
    return pattern


def is_wildcard(pattern: str) -> bool:
    return WILDCARD in pattern


@lru_cache(maxsize=512)
def _compile(pattern: str) -> re.Pattern:
    parts = [re.escape(part) for part in pattern.split(WILDCARD)]
    return re.compile(".*".join(parts))


def domain_matches(pattern: str, host: str, strict: bool | None = None) -> bool:
    """Return True when *host* is covered by the domain *pattern*."""
    return pattern_covers(pattern, normalize_host(host, strict), strict)


def pattern_covers(pattern: str, host: str, strict: bool | None = None) -> bool:
    """Like domain_matches, for a *host* already passed through normalize_host."""
    pattern = normalize_domain(pattern, strict)
    if not pattern or not host:
        return False
    if not is_wildcard(pattern):
        return pattern == host
    return _compile(pattern).fullmatch(host) is not None


def validate_domain_pattern(pattern: str) -> str:
    """
    Check a domain pattern before it is stored and return it normalized
    (lower-cased, stripped). ``www.`` is kept so strict mode can tell the
    two apart.

    Raises:
        ValidationError: empty pattern, a wildcard that is not a whole
            leading or trailing label, or an invalid label.
    """
    value = pattern.strip().lower().rstrip(".") if pattern else ""
    if not value:
        raise ValidationError("Domain must not be empty", field="domain")

    labels = value.split(".")
    for index, label in enumerate(labels):
        if label == WILDCARD:
            if index not in (0, len(labels) - 1) or len(labels) == 1:
                raise ValidationError(
                    f"Wildcard in '{pattern}' must be a whole leading or trailing label",
                    field="domain",
                )
            continue
        if WILDCARD in label:
            raise ValidationError(
                f"Wildcard in '{pattern}' must be a whole leading or trailing label",
                field="domain",
            )
        if not _LABEL_RE.match(label):
            raise ValidationError(f"Invalid domain label '{label}' in '{pattern}'", field="domain")
    return value
