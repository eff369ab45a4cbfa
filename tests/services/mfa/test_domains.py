from __future__ import annotations

import pytest

from guardian_shell.services.mfa.domains import (
    DomainKind,
    classify_domain,
    device_account_url,
    enroll_url,
    normalize_domain,
    resolve_transaction_url,
    rich_consent_base,
    rich_consent_url,
)


@pytest.mark.parametrize(
    "domain, kind",
    [
        ("tenant.guardian.auth0.com", DomainKind.GUARDIAN_HOSTED),
        ("tenant.guardian.eu.auth0.com", DomainKind.GUARDIAN_HOSTED),
        ("https://tenant.guardian.auth0.com/", DomainKind.GUARDIAN_HOSTED),
        ("login.example.com/appliance-mfa", DomainKind.PREFIXED),
        ("tenant.auth0.com", DomainKind.CUSTOM),
        ("login.example.com", DomainKind.CUSTOM),
    ],
)
def test_classify_domain(domain, kind):
    assert classify_domain(domain) is kind


def test_normalize_strips_scheme_and_one_trailing_slash():
    assert normalize_domain("https://tenant.auth0.com/") == "tenant.auth0.com"
    assert normalize_domain("http://tenant.auth0.com") == "tenant.auth0.com"
    assert normalize_domain("tenant.auth0.com//") == "tenant.auth0.com/"


def test_guardian_hosted_resolve_url_has_no_prefix():
    assert (
        resolve_transaction_url("tenant.guardian.auth0.com")
        == "https://tenant.guardian.auth0.com/api/resolve-transaction"
    )


def test_custom_domain_gets_appliance_prefix():
    assert enroll_url("tenant.auth0.com") == "https://tenant.auth0.com/appliance-mfa/api/enroll"
    assert (
        device_account_url("https://login.example.com/", "dev_1")
        == "https://login.example.com/appliance-mfa/api/device-accounts/dev_1"
    )


def test_prefixed_domain_is_not_prefixed_twice():
    assert (
        resolve_transaction_url("login.example.com/appliance-mfa")
        == "https://login.example.com/appliance-mfa/api/resolve-transaction"
    )


@pytest.mark.parametrize(
    "domain",
    ["a.guardian.auth0.com", "guardian-x.us.auth0.com", "login.example.com", "tenant.eu.auth0.com"],
)
def test_prefix_is_inserted_only_for_non_guardian_domains(domain):
    url = enroll_url(domain)
    if classify_domain(domain) is DomainKind.GUARDIAN_HOSTED:
        assert "/appliance-mfa" not in url
    else:
        assert url.count("/appliance-mfa") == 1


@pytest.mark.parametrize(
    "domain, base",
    [
        ("tenant.guardian.auth0.com", "tenant.auth0.com"),
        ("tenant.guardian.eu.auth0.com", "tenant.eu.auth0.com"),
        ("login.example.com/appliance-mfa", "login.example.com"),
        ("https://login.example.com/appliance-mfa/", "login.example.com"),
        ("login.example.com", "login.example.com"),
    ],
)
def test_rich_consent_base(domain, base):
    assert rich_consent_base(domain) == base


def test_rich_consent_url():
    assert rich_consent_url("tenant.guardian.auth0.com", "cns_1") == "https://tenant.auth0.com/rich-consents/cns_1"
