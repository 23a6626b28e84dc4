# Copyright (c) 2025 Gimel Foundation and the persons identified as the document authors.
# All rights reserved. This file is subject to the Gimel Foundation's Legal Provisions Relating to GiFo Documents.
# See http://GimelFoundation.com or https://github.com/Gimel-Foundation for details.
# Code Components extracted from GiFo-RfC 0111 must include this license text and are provided without warranty.

"""
Package util provides configuration helpers shared across claimgate.
"""

from .config import (
    ENV_PREFIX,
    config_format,
    dump_config_text,
    get_config_value,
    load_config_file,
    parse_config_text,
    parse_duration_string,
)

__all__ = [
    'ENV_PREFIX',
    'config_format',
    'dump_config_text',
    'get_config_value',
    'load_config_file',
    'parse_config_text',
    'parse_duration_string',
]
