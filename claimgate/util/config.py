"""
Configuration helpers for claimgate.

Environment lookups use the ``CLAIMGATE_`` prefix. Rule sources, scenario
files and user directories are YAML or JSON, chosen by file extension.
"""

import json
import os
import re
from datetime import timedelta
from pathlib import Path
from typing import Any, Callable, Optional

import aiofiles
import yaml


ENV_PREFIX = "CLAIMGATE_"

_DURATION_PART = re.compile(r'(\d+(?:\.\d+)?)(ms|s|m|h|d)')
_DURATION_UNITS = {
    'ms': 'milliseconds',
    's': 'seconds',
    'm': 'minutes',
    'h': 'hours',
    'd': 'days',
}
_FORMATS = {'.json': 'json', '.yaml': 'yaml', '.yml': 'yaml'}


def get_config_value(key: str, default: Any = None,
                     cast_type: Optional[Callable[[str], Any]] = None,
                     env_prefix: str = ENV_PREFIX) -> Any:
    """
    Read ``{env_prefix}{KEY}`` from the environment.

    Unset or empty variables yield ``default``. A value that ``cast_type``
    rejects raises ValueError naming the variable.
    """
    env_key = f"{env_prefix}{key.upper()}"
    value = os.environ.get(env_key)
    if value is None or value == "":
        return default
    if cast_type is None:
        return value

    try:
        return cast_type(value)
    except (ValueError, TypeError) as e:
        raise ValueError(f"{env_key}={value!r} is not a valid {getattr(cast_type, '__name__', 'value')}") from e


def parse_duration_string(duration_str: str) -> timedelta:
    """
    Parse a duration such as '30s', '1m30s', '250ms' or '2h'.
    A bare number is taken as seconds.
    """
    if not isinstance(duration_str, str):
        raise ValueError("Duration must be a string")

    text = duration_str.strip().lower().replace(" ", "")
    if not text:
        raise ValueError("Duration is empty")

    try:
        return timedelta(seconds=float(text))
    except ValueError:
        pass

    total = timedelta()
    position = 0
    for part in _DURATION_PART.finditer(text):
        if part.start() != position:
            break
        amount, unit = part.groups()
        total += timedelta(**{_DURATION_UNITS[unit]: float(amount)})
        position = part.end()

    if position == 0 or position != len(text):
        raise ValueError(f"Invalid duration format: {duration_str}")
    return total


def config_format(file_path: str) -> str:
    """Return 'json' or 'yaml' for a file path, by extension."""
    suffix = Path(file_path).suffix.lower()
    try:
        return _FORMATS[suffix]
    except KeyError:
        raise ValueError(f"Unsupported configuration file format: {suffix or file_path}")


def parse_config_text(text: str, format_type: str) -> Any:
    """Parse JSON or YAML text. Empty YAML parses as None."""
    if format_type == 'json':
        return json.loads(text)
    if format_type == 'yaml':
        return yaml.safe_load(text)
    raise ValueError(f"Unsupported configuration format: {format_type}")


def dump_config_text(data: Any, format_type: str) -> str:
    """Serialize data as JSON or YAML text with stable key order."""
    if format_type == 'json':
        return json.dumps(data, indent=2, sort_keys=True) + "\n"
    if format_type == 'yaml':
        return yaml.safe_dump(data, default_flow_style=False, sort_keys=True)
    raise ValueError(f"Unsupported configuration format: {format_type}")


async def load_config_file(file_path: str) -> Any:
    """
    Read and parse a JSON or YAML file.

    Raises:
        OSError: If the file cannot be read
        ValueError: If the extension or JSON content is invalid
        yaml.YAMLError: If the YAML content is invalid
    """
    format_type = config_format(file_path)
    async with aiofiles.open(file_path, 'r', encoding='utf-8') as f:
        text = await f.read()
    return parse_config_text(text, format_type)
