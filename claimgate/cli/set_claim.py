"""
claimgate set-claim: grant or revoke a custom claim on a directory user.

The identifier is treated as an email address when it contains '@' and as
a user key otherwise. Running the command twice with the same arguments
leaves the directory exactly as one run would.
"""

import asyncio
import sys
from typing import Optional, Tuple

import click

from ..identity.credentials import DEFAULT_CREDENTIALS_PATH, ServiceCredentials, load_credentials
from ..identity.provider import FileIdentityProvider
from ..identity.types import ClaimMutationResult
from ..types.errors import ClaimGateError, CredentialsError
from .common import configure_logging


DEFAULT_DIRECTORY_PATH = "users.yaml"


async def apply_claim(
    identifier: str,
    claim: str,
    value: bool,
    credentials_path: str,
    directory_path: str
) -> Tuple[ServiceCredentials, ClaimMutationResult]:
    credentials = await load_credentials(credentials_path)
    provider = await FileIdentityProvider.open(directory_path)
    try:
        result = await provider.set_claim(identifier, claim, value)
    finally:
        await provider.close()
    return credentials, result


@click.command("set-claim")
@click.argument("identifier")
@click.argument("flag", required=False, default="true",
                type=click.Choice(["true", "false"], case_sensitive=False))
@click.option("--claim", default="admin", show_default=True, help="Claim name to set.")
@click.option("--credentials", "credentials_path", default=DEFAULT_CREDENTIALS_PATH, show_default=True,
              type=click.Path(dir_okay=False), help="Service account key file (JSON).")
@click.option("--directory", "directory_path", default=DEFAULT_DIRECTORY_PATH, show_default=True,
              type=click.Path(dir_okay=False), help="User directory file (YAML or JSON).")
@click.option("--log-level", default="WARNING",
              type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False))
def set_claim_command(
    identifier: str,
    flag: str,
    claim: str,
    credentials_path: str,
    directory_path: str,
    log_level: Optional[str],
) -> None:
    """
    Set a custom claim (default: admin=true) on a user.

    \b
    Examples:
      claimgate set-claim admin@example.com
      claimgate set-claim adminUser false
      claimgate set-claim ops@example.com true --claim admin --directory users.yaml
    """
    configure_logging(log_level)
    value = flag.lower() == "true"

    try:
        credentials, result = asyncio.run(
            apply_claim(identifier, claim, value, credentials_path, directory_path)
        )
    except CredentialsError as e:
        click.echo(f"Credentials error: {e.message}", err=True)
        sys.exit(1)
    except ClaimGateError as e:
        click.echo(f"Error setting {claim} claim for {identifier}: {e.message}", err=True)
        sys.exit(1)
    except Exception as e:
        click.echo(f"Error setting {claim} claim for {identifier}: {e}", err=True)
        sys.exit(1)

    suffix = "" if result.changed else " (already set)"
    click.echo(
        f"Set {claim}={flag.lower()} for user {result.user.key} ({result.user.email}) "
        f"in {credentials.project_id}{suffix}"
    )
