"""
Line-oriented report output.

Every line starts with a fixed severity tag so the output can be grepped:

    [INFO] informational
    [ OK ] passed check
    [WARN] warning finding
    [ERR ] critical finding (written to stderr)
"""

import click

from .validators import Category, Finding, ValidationReport, suggested_tls_block


def info(message: str) -> None:
    click.echo(f"[INFO] {message}")


def ok(message: str) -> None:
    click.echo(f"[ OK ] {message}")


def warn(message: str) -> None:
    click.echo(f"[WARN] {message}")


def err(message: str) -> None:
    click.echo(f"[ERR ] {message}", err=True)


def print_finding(finding: Finding, verbose: bool = False) -> None:
    """Print one finding with its follow-up hints."""
    if finding.is_critical:
        err(finding.message)
        return

    warn(finding.message)

    if finding.category == Category.TLS_DOMAIN:
        if verbose and finding.details.get("rule"):
            warn(f"    rule: {finding.details['rule']}")
        domain = finding.details.get("domain")
        if domain:
            warn("    suggested tls block:")
            for line in suggested_tls_block(domain).splitlines():
                warn(f"      {line}")


def print_summary(report: ValidationReport) -> None:
    """Print the closing summary line and verdict."""
    click.echo()
    info(f"Summary: {len(report.critical)} critical, {len(report.warnings)} warning(s)")
    if report.passed:
        ok("No critical issues found.")
    else:
        err("Validation found critical issues.")


def print_report(report: ValidationReport, verbose: bool = False) -> int:
    """
    Print all findings of a report followed by the summary.

    Returns:
        Process exit code for the report
    """
    for finding in report.findings:
        print_finding(finding, verbose=verbose)

    if report.by_category(Category.MISSING_SERVICE):
        err("For redirect-only routers, set: service: noop@internal")
        err("Otherwise ensure the missing service is generated in the same dynamic config.")

    print_summary(report)
    return report.exit_code
