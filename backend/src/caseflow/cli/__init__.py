"""CLI entry points for caseflow.

Provides command-line tools for:
- Inspecting and transitioning cases
- Defendant identity lookups
- Resolving representation requests
- Listing hearings
- Database setup and a development server
"""

import click

from .cases import case_group, hearing_group, identity_group, request_group
from .db import cli as db_cli
from .dev import cli as dev_cli


@click.group()
@click.version_option(version="0.1.0", prog_name="caseflow")
def main():
    """caseflow - legal case lifecycle and workflow engine.

    Command-line tools for operating on cases, requests and hearings in
    the configured document store.
    """
    pass


main.add_command(case_group, name="case")
main.add_command(identity_group, name="identity")
main.add_command(request_group, name="request")
main.add_command(hearing_group, name="hearing")
main.add_command(db_cli, name="db")
main.add_command(dev_cli, name="dev")


if __name__ == "__main__":
    main()
