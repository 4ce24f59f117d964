"""
Tests for semantic validators and report aggregation.
"""

import yaml

from traefik_doctor.model import Router, RouteModel, Service
from traefik_doctor.validators import (
    Category,
    Severity,
    aggregate,
    check_service_references,
    check_tls_domains,
    critical,
    extract_domain,
    is_pattern_host_rule,
    suggested_tls_block,
    validate_model,
    warning,
)


def model(routers, services=()):
    return RouteModel(routers=tuple(routers), services=tuple(Service(s) for s in services))


class TestServiceReferences:
    """Test referential integrity checks."""

    def test_missing_service_is_critical(self):
        findings = check_service_references(
            model([Router("r1", service_ref="missing")])
        )

        assert len(findings) == 1
        assert findings[0].severity == Severity.CRITICAL
        assert findings[0].category == Category.MISSING_SERVICE
        assert findings[0].router == "r1"
        assert "r1" in findings[0].message
        assert "missing" in findings[0].message
        assert findings[0].details["service"] == "missing"

    def test_existing_service_passes(self):
        assert check_service_references(model([Router("r1", service_ref="s1")], ["s1"])) == []

    def test_null_service_passes(self):
        """Test redirect-only routers without a service are accepted."""
        assert check_service_references(model([Router("redirect")])) == []

    def test_cross_provider_is_exempt(self):
        """Test name@provider is never reported, whether or not it is defined."""
        routers = [Router("r1", service_ref="svc@docker")]

        assert check_service_references(model(routers)) == []
        assert check_service_references(model(routers, ["svc"])) == []
        assert check_service_references(model(routers, ["svc@docker"])) == []

    def test_one_finding_per_router(self):
        """Test all routers are checked, no fail-fast."""
        routers = [
            Router("r1", service_ref="a"),
            Router("r2", service_ref="s1"),
            Router("r3", service_ref="b"),
        ]

        findings = check_service_references(model(routers, ["s1"]))

        assert [f.router for f in findings] == ["r1", "r3"]


class TestDomainExtraction:
    """Test pattern detection and domain derivation."""

    def test_pattern_marker(self):
        assert is_pattern_host_rule("HostRegexp(`{sub}.example.com`)")
        assert not is_pattern_host_rule("Host(`a.com`)")

    def test_extract_domain(self):
        assert extract_domain("HostRegexp(`{sub}.example.com`)") == "example.com"

    def test_extract_domain_with_regex_label(self):
        assert extract_domain("HostRegexp(`{subdomain:[a-z]+}.my-site.co.uk`)") == "my-site.co.uk"

    def test_extract_domain_in_compound_rule(self):
        rule = "HostRegexp(`{sub}.example.org`) && PathPrefix(`/api`)"
        assert extract_domain(rule) == "example.org"

    def test_extract_domain_fails(self):
        assert extract_domain("HostRegexp(`^.+\\.example\\.com$`)") is None

    def test_suggested_tls_block_is_yaml(self):
        block = yaml.safe_load(suggested_tls_block("example.com"))
        assert block == {"tls": {"domains": [{"main": "example.com", "sans": ["*.example.com"]}]}}


class TestTlsDomains:
    """Test TLS domain coverage checks."""

    def test_pattern_router_without_tls(self):
        findings = check_tls_domains(
            model([Router("r1", rule="HostRegexp(`{sub}.example.com`)", service_ref="s1")], ["s1"])
        )

        assert len(findings) == 1
        assert findings[0].severity == Severity.WARNING
        assert findings[0].category == Category.TLS_DOMAIN
        assert findings[0].details["domain"] == "example.com"
        assert "example.com" in findings[0].message

    def test_empty_domain_list_warns(self):
        findings = check_tls_domains(
            model([Router("r1", rule="HostRegexp(`{sub}.example.com`)", tls_domains=())])
        )
        assert len(findings) == 1

    def test_declared_domains_pass(self):
        findings = check_tls_domains(
            model([Router("r1", rule="HostRegexp(`{sub}.example.com`)", tls_domains=("example.com",))])
        )
        assert findings == []

    def test_literal_host_ignored(self):
        assert check_tls_domains(model([Router("r1", rule="Host(`a.com`)")])) == []

    def test_unknown_derived_domain(self):
        """Test failed extraction is reported as unknown, not omitted."""
        findings = check_tls_domains(model([Router("r1", rule="HostRegexp(`^.+$`)")]))

        assert findings[0].details["domain"] is None
        assert "derived domain: unknown" in findings[0].message


class TestValidationReport:
    """Test aggregation and exit codes."""

    def test_empty_report_passes(self):
        report = aggregate([])
        assert report.passed
        assert report.exit_code == 0

    def test_warnings_never_fail(self):
        report = aggregate([warning(Category.TLS_DOMAIN, "w1"), warning(Category.FORMAT, "w2")])
        assert report.passed
        assert report.exit_code == 0
        assert len(report.warnings) == 2

    def test_critical_fails(self):
        report = aggregate([warning(Category.TLS_DOMAIN, "w"), critical(Category.MISSING_SERVICE, "c")])
        assert not report.passed
        assert report.exit_code == 1
        assert len(report.critical) == 1

    def test_by_category(self):
        report = aggregate([warning(Category.TLS_DOMAIN, "w"), critical(Category.MISSING_SERVICE, "c")])
        assert [f.message for f in report.by_category(Category.TLS_DOMAIN)] == ["w"]

    def test_validate_model_counts(self):
        report = validate_model(model(
            [
                Router("r1", rule="HostRegexp(`{sub}.example.com`)", service_ref="missing"),
                Router("r2", rule="Host(`a.com`)", service_ref="s1"),
            ],
            ["s1"],
        ))

        assert report.router_count == 2
        assert report.service_count == 1
        assert len(report.critical) == 1
        assert len(report.warnings) == 1
        assert report.exit_code == 1
