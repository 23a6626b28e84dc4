# Copyright (c) 2025 Gimel Foundation and the persons identified as the document authors.
# All rights reserved. This file is subject to the Gimel Foundation's Legal Provisions Relating to GiFo Documents.
# See http://GimelFoundation.com or https://github.com/Gimel-Foundation for details.
# Code Components extracted from GiFo-RfC 0111 must include this license text and are provided without warranty.

"""
Package core holds run configuration for environments and the harness.
"""

from .config import (
    DEFAULT_PROJECT_ID,
    DEFAULT_SCENARIO_TIMEOUT,
    EnvironmentConfig,
    HarnessConfig,
)

__all__ = [
    'DEFAULT_PROJECT_ID',
    'DEFAULT_SCENARIO_TIMEOUT',
    'EnvironmentConfig',
    'HarnessConfig',
]
