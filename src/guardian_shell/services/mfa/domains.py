"""Tenant domain classification and Guardian endpoint URLs.

Mutating endpoints (enroll, resolve-transaction, device-accounts) share one
three-way rule:

* Guardian-hosted tenants (``guardian`` followed eventually by ``.auth0.com``)
  are addressed directly: ``https://{domain}{suffix}``.
* Domains that already carry ``/appliance-mfa`` are used unchanged.
* Every other (custom) domain gets the ``/appliance-mfa`` management prefix.

Rich-consent URLs follow a different rule, see :func:`rich_consent_base`. The
two are not inverses of each other.
"""

from __future__ import annotations

import re
from enum import Enum

__all__ = [
    "APPLIANCE_PREFIX",
    "DomainKind",
    "normalize_domain",
    "classify_domain",
    "endpoint_url",
    "enroll_url",
    "resolve_transaction_url",
    "device_account_url",
    "rich_consent_base",
    "rich_consent_url",
]

APPLIANCE_PREFIX = "/appliance-mfa"

_GUARDIAN_HOSTED = re.compile(r"guardian.*\.auth0\.com")
_GUARDIAN_LABEL = re.compile(r"\.guardian(?=\.)")


class DomainKind(str, Enum):
    GUARDIAN_HOSTED = "guardian_hosted"
    PREFIXED = "prefixed"
    CUSTOM = "custom"

    def __str__(self) -> str:
        return str(self.value)


def normalize_domain(domain: str) -> str:
    """Strip one leading http(s) scheme and one trailing slash."""

    value = (domain or "").strip()
    for scheme in ("http://", "https://"):
        if value.startswith(scheme):
            value = value[len(scheme):]
    if value.endswith("/"):
        value = value[:-1]
    return value


def _classify(value: str) -> DomainKind:
    if _GUARDIAN_HOSTED.search(value):
        return DomainKind.GUARDIAN_HOSTED
    if APPLIANCE_PREFIX in value:
        return DomainKind.PREFIXED
    return DomainKind.CUSTOM


def classify_domain(domain: str) -> DomainKind:
    return _classify(normalize_domain(domain))


def endpoint_url(domain: str, suffix: str) -> str:
    """Render the canonical URL for a mutating Guardian endpoint."""

    value = normalize_domain(domain)
    if _classify(value) is DomainKind.CUSTOM:
        return f"https://{value}{APPLIANCE_PREFIX}{suffix}"
    return f"https://{value}{suffix}"


def enroll_url(domain: str) -> str:
    return endpoint_url(domain, "/api/enroll")


def resolve_transaction_url(domain: str) -> str:
    return endpoint_url(domain, "/api/resolve-transaction")


def device_account_url(domain: str, enrollment_id: str) -> str:
    return endpoint_url(domain, f"/api/device-accounts/{enrollment_id}")


def rich_consent_base(domain: str) -> str:
    """Return the unprefixed host for rich-consent lookups.

    Removes a ``.guardian`` subdomain label and any ``/appliance-mfa`` prefix.
    Domains carrying neither are returned as normalized.
    """

    value = normalize_domain(domain).replace(APPLIANCE_PREFIX, "")
    host, sep, path = value.partition("/")
    host = _GUARDIAN_LABEL.sub("", host, count=1)
    return f"{host}{sep}{path}".rstrip("/")


def rich_consent_url(domain: str, consent_id: str) -> str:
    return f"https://{rich_consent_base(domain)}/rich-consents/{consent_id}"
