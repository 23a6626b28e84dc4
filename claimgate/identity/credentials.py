"""
Administrative credentials for out-of-band claim mutation.
"""

from dataclasses import dataclass, field
from typing import Any, Dict
import json
import logging

import aiofiles

from ..types.errors import CredentialsError


logger = logging.getLogger(__name__)

DEFAULT_CREDENTIALS_PATH = "serviceAccountKey.json"
REQUIRED_FIELDS = ('project_id', 'client_email', 'private_key')


@dataclass(frozen=True)
class ServiceCredentials:
    """Service account credentials. The private key never appears in repr."""
    project_id: str
    client_email: str
    private_key: str = field(repr=False)

    @classmethod
    def from_dict(cls, data: Dict[str, Any], path: str = DEFAULT_CREDENTIALS_PATH) -> 'ServiceCredentials':
        if not isinstance(data, dict):
            raise CredentialsError(f"Credentials file {path} must contain a JSON object", path=path)
        missing = [name for name in REQUIRED_FIELDS if not data.get(name)]
        if missing:
            raise CredentialsError(
                f"Credentials file {path} is missing {', '.join(missing)}",
                path=path,
                details={'missing': missing}
            )
        return cls(
            project_id=str(data['project_id']),
            client_email=str(data['client_email']),
            private_key=str(data['private_key'])
        )


async def load_credentials(path: str = DEFAULT_CREDENTIALS_PATH) -> ServiceCredentials:
    """
    Load a service account key file.

    Raises:
        CredentialsError: If the file is missing, unreadable or incomplete
    """
    try:
        async with aiofiles.open(path, 'r', encoding='utf-8') as f:
            text = await f.read()
    except FileNotFoundError as e:
        raise CredentialsError(f"Credentials file {path} not found", path=path, cause=e)
    except OSError as e:
        raise CredentialsError(f"Cannot read credentials file {path}: {e}", path=path, cause=e)

    try:
        data = json.loads(text)
    except ValueError as e:
        raise CredentialsError(f"Credentials file {path} is not valid JSON: {e}", path=path, cause=e)

    credentials = ServiceCredentials.from_dict(data, path)
    logger.debug(f"Loaded credentials for {credentials.client_email} ({credentials.project_id})")
    return credentials
