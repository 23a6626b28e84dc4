"""
Configuration module for claimgate.

Copyright (c) 2025 Gimel Foundation and the persons identified as the document authors.
All rights reserved. This file is subject to the Gimel Foundation's Legal Provisions Relating to GiFo Documents.
See http://GimelFoundation.com or https://github.com/Gimel-Foundation for details.
Code Components extracted from GiFo-RfC 0111 must include this license text and are provided without warranty.
"""

from dataclasses import dataclass, field
from datetime import timedelta
from typing import Optional

from ..types.errors import SetupError
from ..util.config import get_config_value, parse_duration_string


DEFAULT_PROJECT_ID = "claimgate-conformance"
DEFAULT_SCENARIO_TIMEOUT = timedelta(seconds=30)


@dataclass
class EnvironmentConfig:
    """Configuration for one evaluation environment"""
    rules_path: Optional[str] = None
    project_id: str = DEFAULT_PROJECT_ID
    store_latency: float = 0.0


@dataclass
class HarnessConfig:
    """Configuration for a conformance harness run"""
    rules_path: Optional[str] = None
    scenarios_path: Optional[str] = None
    scenario_timeout: timedelta = field(default_factory=lambda: DEFAULT_SCENARIO_TIMEOUT)
    project_id: str = DEFAULT_PROJECT_ID
    shuffle_seed: Optional[int] = None
    store_latency: float = 0.0
    log_level: str = "WARNING"

    @classmethod
    def from_env(cls) -> "HarnessConfig":
        """Create configuration from CLAIMGATE_* environment variables"""
        timeout = get_config_value("scenario_timeout")
        return cls(
            rules_path=get_config_value("rules_path"),
            scenarios_path=get_config_value("scenarios_path"),
            scenario_timeout=parse_duration_string(timeout) if timeout else DEFAULT_SCENARIO_TIMEOUT,
            project_id=get_config_value("project_id", DEFAULT_PROJECT_ID),
            shuffle_seed=get_config_value("shuffle_seed", None, int),
            log_level=get_config_value("log_level", "WARNING"),
        )

    def environment_config(self) -> EnvironmentConfig:
        """Configuration for the environments this run creates"""
        return EnvironmentConfig(
            rules_path=self.rules_path,
            project_id=self.project_id,
            store_latency=self.store_latency,
        )

    def validate(self) -> bool:
        """Validate the configuration"""
        if self.scenario_timeout.total_seconds() <= 0:
            raise SetupError("scenario_timeout must be positive", artifact="scenario_timeout")
        if not self.project_id:
            raise SetupError("project_id is required", artifact="project_id")
        if self.store_latency < 0:
            raise SetupError("store_latency cannot be negative", artifact="store_latency")
        return True
