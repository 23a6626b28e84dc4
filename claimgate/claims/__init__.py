# Copyright (c) 2025 Gimel Foundation and the persons identified as the document authors.
# All rights reserved. This file is subject to the Gimel Foundation's Legal Provisions Relating to GiFo Documents.
# See http://GimelFoundation.com or https://github.com/Gimel-Foundation for details.
# Code Components extracted from GiFo-RfC 0111 must include this license text and are provided without warranty.

"""
Package claims implements the immutable claims model: principals and the
typed claim bags used as inputs to access-control decisions.
"""

from .types import (
    Claims,
    ClaimDefinition,
    Principal,
    RECOGNIZED_CLAIMS,
    parse_bool_claim,
    recognized_claim_names,
    register_claim,
    strict_equals,
)

__all__ = [
    'Claims',
    'ClaimDefinition',
    'Principal',
    'RECOGNIZED_CLAIMS',
    'parse_bool_claim',
    'recognized_claim_names',
    'register_claim',
    'strict_equals',
]
