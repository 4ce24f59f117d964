"""
Router/service model built from a parsed dynamic config.

Only the subset needed for diagnosis is extracted: router rule, service
reference and TLS domains, plus the set of service names.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from .document import Document, FormatKind


# Service references containing this separator belong to another provider
PROVIDER_SEPARATOR = "@"


@dataclass(frozen=True)
class Router:
    """A router from http.routers."""
    name: str
    rule: str = ""
    service_ref: Optional[str] = None
    tls_domains: Optional[Tuple[str, ...]] = None

    @property
    def is_cross_provider(self) -> bool:
        return self.service_ref is not None and PROVIDER_SEPARATOR in self.service_ref

    @property
    def has_tls_domains(self) -> bool:
        return bool(self.tls_domains)

    @classmethod
    def from_dict(cls, name: str, data: Dict[str, Any]) -> "Router":
        """Create a Router from its config mapping."""
        rule = data.get("rule")
        service = data.get("service")

        return cls(
            name=name,
            rule=rule if isinstance(rule, str) else "",
            service_ref=service if isinstance(service, str) and service else None,
            tls_domains=_tls_domains(data.get("tls")),
        )


@dataclass(frozen=True)
class Service:
    """A service from http.services. Only its identity matters here."""
    name: str


def _tls_domains(tls: Any) -> Optional[Tuple[str, ...]]:
    """Extract tls.domains as domain names, or None when not a list."""
    if not isinstance(tls, dict):
        return None

    domains = tls.get("domains")
    if not isinstance(domains, list):
        return None

    names = []
    for entry in domains:
        if isinstance(entry, dict):
            entry = entry.get("main")
        names.append(_domain_name(entry))
    return tuple(names)


def _domain_name(value: Any) -> str:
    """Scalar domain entries as text; nested structures carry no name."""
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float, bool)):
        return str(value)
    return ""


@dataclass(frozen=True)
class RouteModel:
    """Routers and services of one config, in document order."""
    routers: Tuple[Router, ...] = field(default_factory=tuple)
    services: Tuple[Service, ...] = field(default_factory=tuple)

    @property
    def service_names(self) -> frozenset:
        return frozenset(service.name for service in self.services)

    @property
    def router_count(self) -> int:
        return len(self.routers)

    @property
    def service_count(self) -> int:
        return len(self.services)

    def is_resolvable(self, router: Router) -> bool:
        """Whether the router's service reference can be satisfied."""
        if router.service_ref is None or router.is_cross_provider:
            return True
        return router.service_ref in self.service_names


def build_model(document: Document) -> RouteModel:
    """
    Extract routers and services from a parsed document.

    Router entries that are not mappings are skipped. Non-mapping
    routers/services sections count as empty.

    Raises:
        ValueError: If the document did not parse as a routing config
    """
    if document.kind != FormatKind.PARSED_OBJECT:
        raise ValueError(f"Cannot build model from '{document.kind.value}' document")

    http = document.http
    routers_section = http.get("routers")
    services_section = http.get("services")

    if not isinstance(routers_section, dict):
        routers_section = {}
    if not isinstance(services_section, dict):
        services_section = {}

    routers = tuple(
        Router.from_dict(name, definition)
        for name, definition in routers_section.items()
        if isinstance(definition, dict)
    )
    services = tuple(Service(name=name) for name in services_section)

    return RouteModel(routers=routers, services=services)
