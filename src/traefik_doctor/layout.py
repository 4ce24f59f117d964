"""
Read-only inspection of a Pangolin install directory.

Checks that the files and directories an installed Pangolin/Traefik stack
expects are present with the right type, that the config archive and GeoLite
database are usable, and runs the dynamic config checks on
config/traefik/dynamic_config.yml. Nothing is modified.

Directory Structure:
    <base>/
    ├── config.tar.gz
    ├── docker-compose.yml
    ├── docker-compose.yml.backup
    ├── GeoLite2-Country_<YYYYMMDD>/
    ├── installer
    └── config/
        ├── config.yml
        ├── GeoLite2-Country.mmdb
        ├── crowdsec/ crowdsec_logs/ db/ grafana/
        ├── letsencrypt/ logs/ prometheus/
        └── traefik/
            ├── dynamic_config.yml
            ├── traefik_config.yml
            └── logs/
"""

import sys
import tarfile
from pathlib import Path
from typing import List, Tuple

import click

from . import report
from .doctor import diagnose_file, print_parse_summary
from .source import FetchError
from .validators import Category, Finding, ValidationReport, aggregate, critical, warning


FILE = "file"
DIR = "dir"
FILE_OR_DIR = "file_or_dir"

ROOT_ENTRIES: List[Tuple[str, str, str]] = [
    ("config.tar.gz", FILE, "Archive"),
    ("docker-compose.yml", FILE, "Docker Compose file"),
    ("docker-compose.yml.backup", FILE, "Docker Compose backup"),
    ("installer", FILE_OR_DIR, "Installer"),
    ("config", DIR, "Config directory"),
]

# Extracted GeoLite archive, suffixed with its release date
GEOLITE_DIR_PATTERN = "GeoLite2-Country_*"

CONFIG_ENTRIES: List[Tuple[str, str, str]] = [
    ("config.yml", FILE, "Main config.yml"),
    ("crowdsec", DIR, "crowdsec directory"),
    ("crowdsec_logs", DIR, "crowdsec_logs directory"),
    ("db", DIR, "db directory"),
    ("GeoLite2-Country.mmdb", FILE, "GeoLite2 mmdb"),
    ("grafana", DIR, "grafana directory"),
    ("letsencrypt", DIR, "letsencrypt directory"),
    ("logs", DIR, "logs directory"),
    ("prometheus", DIR, "prometheus directory"),
    ("traefik", DIR, "traefik directory"),
]

TRAEFIK_ENTRIES: List[Tuple[str, str, str]] = [
    ("dynamic_config.yml", FILE, "Traefik dynamic config"),
    ("traefik_config.yml", FILE, "Traefik static config"),
    ("logs", DIR, "Traefik logs directory"),
]


class LayoutInspector:
    """Inspects a Pangolin base directory and collects findings."""

    def __init__(self, base_dir):
        self.base_dir = Path(base_dir)
        self.config_dir = self.base_dir / "config"
        self.traefik_dir = self.config_dir / "traefik"
        self.findings: List[Finding] = []
        self.router_count = 0
        self.service_count = 0

    def _add(self, finding: Finding) -> None:
        self.findings.append(finding)
        report.print_finding(finding)

    def check_path(self, path: Path, expected: str, label: str) -> bool:
        """Check one expected entry. Returns True if present with the right type."""
        if not path.exists():
            self._add(critical(Category.LAYOUT, f"Missing {label}: {path}", path=str(path)))
            return False

        if expected == FILE and not path.is_file():
            self._add(critical(Category.LAYOUT, f"{label} is not a file: {path}", path=str(path)))
            return False
        if expected == DIR and not path.is_dir():
            self._add(critical(Category.LAYOUT, f"{label} is not a directory: {path}", path=str(path)))
            return False
        if expected == FILE_OR_DIR and not (path.is_file() or path.is_dir()):
            self._add(critical(
                Category.LAYOUT, f"{label} exists but has unexpected type: {path}", path=str(path)
            ))
            return False

        kind = {FILE: " (file)", DIR: " (dir)"}.get(expected, "")
        report.ok(f"{label} exists{kind}: {path}")
        return True

    def check_entries(self, directory: Path, entries: List[Tuple[str, str, str]]) -> None:
        for name, expected, label in entries:
            self.check_path(directory / name, expected, label)

    def check_geolite_directory(self) -> None:
        """A dated GeoLite2-Country_<YYYYMMDD> extraction directory must exist."""
        pattern = self.base_dir / GEOLITE_DIR_PATTERN
        matches = sorted(self.base_dir.glob(GEOLITE_DIR_PATTERN))
        if not matches:
            self._add(critical(
                Category.LAYOUT, f"Missing GeoLite extraction directory: {pattern}", path=str(pattern)
            ))
            return

        directories = [path for path in matches if path.is_dir()]
        if not directories:
            self._add(critical(
                Category.LAYOUT,
                f"GeoLite extraction directory is not a directory: {matches[-1]}",
                path=str(matches[-1]),
            ))
            return

        report.ok(f"GeoLite extraction directory exists (dir): {directories[-1]}")

    def check_archive(self) -> None:
        """config.tar.gz must open as a gzip tar archive."""
        archive = self.base_dir / "config.tar.gz"
        if not archive.is_file():
            return

        try:
            with tarfile.open(archive, "r:gz") as tar:
                tar.getmembers()
            report.ok("config.tar.gz is readable and not corrupted")
        except (tarfile.TarError, OSError, EOFError) as e:
            self._add(critical(
                Category.LAYOUT,
                f"config.tar.gz is not readable as a gzip tar archive: {e}",
                path=str(archive),
            ))

    def check_geoip_database(self) -> None:
        """GeoLite2-Country.mmdb must not be empty."""
        mmdb = self.config_dir / "GeoLite2-Country.mmdb"
        if not mmdb.is_file():
            return

        size = mmdb.stat().st_size
        if size > 0:
            report.ok(f"GeoLite2-Country.mmdb is present and non-empty ({size} bytes)")
        else:
            self._add(critical(
                Category.LAYOUT, "GeoLite2-Country.mmdb exists but is empty", path=str(mmdb)
            ))

    def check_dynamic_config(self) -> None:
        """Run the semantic checks on the Traefik dynamic config."""
        dynamic = self.traefik_dir / "dynamic_config.yml"
        if not dynamic.is_file():
            return

        report.info("Running Traefik dynamic config semantic checks (read-only)")
        try:
            result = diagnose_file(dynamic, label="dynamic_config.yml")
        except FetchError as e:
            self._add(warning(Category.LAYOUT, f"Skipped dynamic config checks: {e}"))
            return

        print_parse_summary(result)
        self.router_count = result.router_count
        self.service_count = result.service_count
        for finding in result.findings:
            self._add(finding)

    def inspect(self) -> ValidationReport:
        """Run all layout checks."""
        report.info(f"Checking root-level files under: {self.base_dir}")
        self.check_entries(self.base_dir, ROOT_ENTRIES)
        self.check_geolite_directory()

        if self.config_dir.is_dir():
            report.info(f"Checking expected entries in {self.config_dir}")
            self.check_entries(self.config_dir, CONFIG_ENTRIES)

        if self.traefik_dir.is_dir():
            report.info("Checking Traefik directory structure")
            self.check_entries(self.traefik_dir, TRAEFIK_ENTRIES)

        self.check_archive()
        self.check_geoip_database()
        self.check_dynamic_config()

        return aggregate(self.findings, self.router_count, self.service_count)


@click.command()
@click.option(
    "--base",
    default="/root",
    show_default=True,
    help="Base directory of the Pangolin install",
    type=click.Path(),
)
def layout(base):
    """Inspect a Pangolin install directory (read-only)."""
    base_dir = Path(base)
    if not base_dir.is_dir():
        click.echo(f"Error: Base directory does not exist: {base_dir}", err=True)
        sys.exit(1)

    result = LayoutInspector(base_dir).inspect()
    report.print_summary(result)
    sys.exit(result.exit_code)
