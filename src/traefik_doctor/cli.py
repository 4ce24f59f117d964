"""traefik-doctor CLI - Main entry point."""

import click

from traefik_doctor.__version__ import __version__
from traefik_doctor.doctor import check, fetch
from traefik_doctor.layout import layout


@click.group()
@click.version_option(version=__version__, prog_name="traefik-doctor")
def cli():
    """traefik-doctor - Read-only diagnostics for Traefik dynamic config."""
    pass


# Register commands
cli.add_command(fetch)
cli.add_command(check)
cli.add_command(layout)


def main():
    cli()


if __name__ == "__main__":
    main()
