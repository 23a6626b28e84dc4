"""
claimgate command line.

Registered as the ``claimgate`` console script:

    claimgate run          run the conformance suite
    claimgate set-claim    grant or revoke a custom claim on a user
"""

import click

from .run import run_command
from .set_claim import set_claim_command


@click.group()
@click.version_option(package_name="claimgate-py")
def cli() -> None:
    """
    claimgate: claims-based access policy checks.

    \b
    Quick start:
      claimgate run
      claimgate run --scenarios scenarios.yaml --shuffle-seed 7
      claimgate set-claim admin@example.com true
    """
    pass


cli.add_command(run_command)
cli.add_command(set_claim_command)


def main() -> None:
    cli()
