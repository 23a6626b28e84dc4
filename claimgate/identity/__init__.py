# Copyright (c) 2025 Gimel Foundation and the persons identified as the document authors.
# All rights reserved. This file is subject to the Gimel Foundation's Legal Provisions Relating to GiFo Documents.
# See http://GimelFoundation.com or https://github.com/Gimel-Foundation for details.
# Code Components extracted from GiFo-RfC 0111 must include this license text and are provided without warranty.

"""
Package identity is the identity/session provider boundary: user directory,
sign-in (session construction) and out-of-band claim mutation.
"""

from .types import (
    ClaimMutationResult,
    IdentifierKind,
    IdentifierLookup,
    Session,
    UserRecord,
    resolve_identifier,
)

from .credentials import (
    DEFAULT_CREDENTIALS_PATH,
    ServiceCredentials,
    load_credentials,
)

from .provider import (
    IdentityProvider,
    MemoryIdentityProvider,
    FileIdentityProvider,
)

__all__ = [
    'ClaimMutationResult',
    'IdentifierKind',
    'IdentifierLookup',
    'Session',
    'UserRecord',
    'resolve_identifier',
    'IdentityProvider',
    'MemoryIdentityProvider',
    'FileIdentityProvider',
    'DEFAULT_CREDENTIALS_PATH',
    'ServiceCredentials',
    'load_credentials',
]
