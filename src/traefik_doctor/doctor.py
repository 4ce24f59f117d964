"""Doctor commands - fetch or read dynamic config and diagnose it."""

import sys
from typing import List

import click
from dotenv import load_dotenv

from . import report
from .config import ConfigError, FetchSettings
from .document import Document, FormatKind, parse_payload
from .model import build_model
from .source import (
    FetchError,
    HTTPStatusError,
    EmptyPayloadError,
    RawPayload,
    build_config_url,
    fetch_config,
    read_config_file,
    save_payload,
)
from .validators import (
    Category,
    Finding,
    ValidationReport,
    aggregate,
    critical,
    validate_model,
    warning,
)


# Flows decide which format problems are fatal
HTTP_FLOW = "http"
FILE_FLOW = "file"


# =============================================================================
# Pipeline
# =============================================================================

def format_findings(document: Document, flow: str, label: str = "config") -> List[Finding]:
    """
    Turn a non-routable format classification into findings.

    The HTTP flow only understands JSON deeply, so an unparseable body is
    treated as another dialect and skipped with a warning. The file flow
    reads YAML, where a parse error is a broken file.
    """
    kind = document.kind

    if kind == FormatKind.EMPTY:
        if flow == HTTP_FLOW:
            return [critical(Category.FORMAT, f"{label} body is empty after trimming whitespace")]
        return [warning(Category.FORMAT, f"{label} has no top-level 'http' section")]

    if kind == FormatKind.NON_PARSEABLE:
        if flow == HTTP_FLOW:
            return [warning(
                Category.FORMAT,
                f"{label} is not valid {document.syntax.upper()}; deep validation skipped",
                error=document.error,
            )]
        return [critical(
            Category.FORMAT,
            f"{label} YAML parse error: {document.error}",
            error=document.error,
        )]

    if kind == FormatKind.PARSED_NON_OBJECT:
        return [critical(Category.FORMAT, f"{label} parsed but top-level object is not a mapping")]

    if kind == FormatKind.MISSING_HTTP:
        return [warning(Category.FORMAT, f"{label} has no top-level 'http' section")]

    return []


def diagnose_document(document: Document, flow: str, label: str = "config") -> ValidationReport:
    """Run the model builder and validators on a parsed document."""
    if document.kind != FormatKind.PARSED_OBJECT:
        return aggregate(format_findings(document, flow, label))

    return validate_model(build_model(document))


def diagnose_payload(
    payload: RawPayload, syntax: str = "json", flow: str = HTTP_FLOW, label: str = "config"
) -> ValidationReport:
    """Parse a raw payload and diagnose it."""
    return diagnose_document(parse_payload(payload, syntax=syntax), flow, label)


def diagnose_file(path, label: str = "config file") -> ValidationReport:
    """
    Read a YAML dynamic config from disk and diagnose it.

    Raises:
        FetchError: File missing or unreadable
    """
    payload = read_config_file(path)
    return diagnose_payload(payload, syntax="yaml", flow=FILE_FLOW, label=label)


def print_parse_summary(result: ValidationReport) -> None:
    """Print the router/service counts when the config was routable."""
    if not result.by_category(Category.FORMAT):
        report.ok(
            f"Parsed config: {result.router_count} routers, {result.service_count} services"
        )


def _persist(payload: RawPayload, body_out) -> None:
    if not body_out:
        return
    try:
        output = save_payload(payload, body_out)
        report.info(f"Saved raw config body to {output}")
    except OSError as e:
        report.warn(f"Could not save raw config body to {body_out}: {e}")


# =============================================================================
# Commands
# =============================================================================

@click.command()
@click.option("--url", help="Control plane base URL [env: PANGOLIN_URL]")
@click.option("--endpoint", help="Config endpoint path [env: ENDPOINT]")
@click.option("--timeout", help="Request timeout in seconds [env: TIMEOUT_SECONDS]")
@click.option("--connect-timeout", help="Connect timeout in seconds [env: CONNECT_TIMEOUT_SECONDS]")
@click.option("--body-out", type=click.Path(), help="Save fetched body to PATH [env: BODY_OUT]")
@click.option(
    "--format",
    "syntax",
    type=click.Choice(["json", "yaml", "auto"]),
    default="json",
    show_default=True,
    help="Payload syntax",
)
@click.option("--verbose", "-v", is_flag=True, help="Show detailed information")
def fetch(url, endpoint, timeout, connect_timeout, body_out, syntax, verbose):
    """Fetch dynamic config from the control plane and validate it."""
    load_dotenv()

    try:
        settings = FetchSettings.from_env(
            url=url,
            endpoint=endpoint,
            timeout=timeout,
            connect_timeout=connect_timeout,
            body_out=body_out,
        )
    except ConfigError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    config_url = build_config_url(settings.url, settings.endpoint)
    report.info(f"Fetching {config_url}")

    try:
        payload = fetch_config(
            config_url, timeout=settings.timeout, connect_timeout=settings.connect_timeout
        )
    except EmptyPayloadError as e:
        report.err(str(e))
        report.err("Traefik cannot build routers/services from an empty config.")
        sys.exit(1)
    except HTTPStatusError as e:
        report.err(str(e))
        sys.exit(1)
    except FetchError as e:
        report.err(f"Could not fetch config: {e}")
        report.err("This matches the 'context deadline exceeded while awaiting headers' symptom.")
        report.err("Check that Pangolin is healthy and reachable from the Traefik container/network.")
        sys.exit(1)

    report.info(f"Fetch OK (HTTP {payload.status_code}, {payload.byte_count} bytes).")

    result = diagnose_payload(payload, syntax=syntax, flow=HTTP_FLOW, label="response")
    print_parse_summary(result)
    exit_code = report.print_report(result, verbose=verbose)

    _persist(payload, settings.body_out)
    sys.exit(exit_code)


@click.command()
@click.argument("path", type=click.Path())
@click.option("--body-out", type=click.Path(), help="Save a copy of the file to PATH")
@click.option("--verbose", "-v", is_flag=True, help="Show detailed information")
def check(path, body_out, verbose):
    """Validate a dynamic config YAML file on disk."""
    report.info(f"Reading {path}")

    try:
        payload = read_config_file(path)
    except FetchError as e:
        report.err(str(e))
        sys.exit(1)

    result = diagnose_payload(payload, syntax="yaml", flow=FILE_FLOW, label="config file")
    print_parse_summary(result)
    exit_code = report.print_report(result, verbose=verbose)

    _persist(payload, body_out)
    sys.exit(exit_code)
