"""
Semantic checks for Traefik dynamic configuration.

Provides:
- Referential integrity: routers pointing at services that do not exist
- TLS domain coverage: HostRegexp routers without tls.domains
- Aggregation of findings into a ValidationReport

Validators never raise on bad data. Every issue becomes a Finding so one
broken router cannot hide problems with the others.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .model import RouteModel


# =============================================================================
# Result Types
# =============================================================================

class Severity(str, Enum):
    CRITICAL = "critical"
    WARNING = "warning"


class Category(str, Enum):
    FORMAT = "format"
    MISSING_SERVICE = "missing_service"
    TLS_DOMAIN = "tls_domain"
    LAYOUT = "layout"


@dataclass(frozen=True)
class Finding:
    """A single issue found in the configuration."""
    severity: Severity
    category: Category
    message: str
    router: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict, compare=False)

    @property
    def is_critical(self) -> bool:
        return self.severity == Severity.CRITICAL


def critical(category: Category, message: str, router: str = None, **details) -> Finding:
    return Finding(Severity.CRITICAL, category, message, router, details)


def warning(category: Category, message: str, router: str = None, **details) -> Finding:
    return Finding(Severity.WARNING, category, message, router, details)


@dataclass(frozen=True)
class ValidationReport:
    """Collection of findings for one config."""
    findings: Tuple[Finding, ...] = ()
    router_count: int = 0
    service_count: int = 0

    @property
    def critical(self) -> List[Finding]:
        """Findings that fail the run."""
        return [f for f in self.findings if f.is_critical]

    @property
    def warnings(self) -> List[Finding]:
        """Advisory findings."""
        return [f for f in self.findings if not f.is_critical]

    @property
    def passed(self) -> bool:
        """No critical findings. Warnings never fail a report."""
        return not self.critical

    @property
    def exit_code(self) -> int:
        return 0 if self.passed else 1

    def by_category(self, category: Category) -> List[Finding]:
        return [f for f in self.findings if f.category == category]


def aggregate(
    findings: Iterable[Finding], router_count: int = 0, service_count: int = 0
) -> ValidationReport:
    """Freeze collected findings into a report."""
    return ValidationReport(
        findings=tuple(findings),
        router_count=router_count,
        service_count=service_count,
    )


# =============================================================================
# Referential Integrity
# =============================================================================

def check_service_references(model: RouteModel) -> List[Finding]:
    """
    Find routers whose service is not defined in this config.

    Routers without a service (e.g. redirect-only) and references to other
    providers (``name@provider``) are accepted.
    """
    findings = []

    for router in model.routers:
        if model.is_resolvable(router):
            continue
        findings.append(critical(
            Category.MISSING_SERVICE,
            f"router '{router.name}' references missing service '{router.service_ref}'",
            router=router.name,
            service=router.service_ref,
        ))

    return findings


# =============================================================================
# TLS Domain Coverage
# =============================================================================

PATTERN_HOST_MARKER = "HostRegexp("

# HostRegexp(`{sub}.example.com`) -> example.com
HOST_REGEXP_DOMAIN = re.compile(r"HostRegexp\(`\{[^}]+\}\.([a-zA-Z0-9.-]+)`\)")


def is_pattern_host_rule(rule: str) -> bool:
    """Whether the rule matches hosts by pattern instead of literal name."""
    return PATTERN_HOST_MARKER in rule


def extract_domain(rule: str) -> Optional[str]:
    """Derive the root domain following the pattern placeholder, if any."""
    match = HOST_REGEXP_DOMAIN.search(rule)
    return match.group(1) if match else None


def suggested_tls_block(domain: str) -> str:
    """YAML tls block covering the domain and its subdomains."""
    return "\n".join([
        "tls:",
        "  domains:",
        f"    - main: {domain}",
        "      sans:",
        f"        - \"*.{domain}\"",
    ])


def check_tls_domains(model: RouteModel) -> List[Finding]:
    """
    Find HostRegexp routers that do not declare tls.domains.

    Traefik cannot turn a host pattern into certificate names, so without an
    explicit declaration it serves the default certificate instead.
    """
    findings = []

    for router in model.routers:
        if not is_pattern_host_rule(router.rule) or router.has_tls_domains:
            continue

        domain = extract_domain(router.rule)
        findings.append(warning(
            Category.TLS_DOMAIN,
            f"router '{router.name}' uses pattern-based host matching without an "
            f"explicit TLS domain declaration (derived domain: {domain or 'unknown'})",
            router=router.name,
            domain=domain,
            rule=router.rule,
        ))

    return findings


# =============================================================================
# Convenience Functions
# =============================================================================

def validate_model(model: RouteModel) -> ValidationReport:
    """Run all semantic checks against a model."""
    findings = check_service_references(model) + check_tls_domains(model)
    return aggregate(findings, model.router_count, model.service_count)
