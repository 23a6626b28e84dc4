# Copyright (c) 2025 Gimel Foundation and the persons identified as the document authors.
# All rights reserved. This file is subject to the Gimel Foundation's Legal Provisions Relating to GiFo Documents.
# See http://GimelFoundation.com or https://github.com/Gimel-Foundation for details.
# Code Components extracted from GiFo-RfC 0111 must include this license text and are provided without warranty.

"""
Package harness runs conformance scenarios against the access policy.
"""

from .loader import load_scenarios, scenario_from_dict, scenarios_from_dict
from .report import HarnessReport, ScenarioResult, ScenarioStatus
from .runner import ConformanceHarness
from .scenarios import (
    ClaimGrant,
    ClaimMutationScenario,
    DirectoryUser,
    Expectation,
    OperationScenario,
    PrincipalSpec,
    Scenario,
    ScenarioFailure,
    ScenarioOutcome,
    SeedDocument,
    default_scenarios,
)

__all__ = [
    'ClaimGrant',
    'ClaimMutationScenario',
    'ConformanceHarness',
    'DirectoryUser',
    'Expectation',
    'HarnessReport',
    'OperationScenario',
    'PrincipalSpec',
    'Scenario',
    'ScenarioFailure',
    'ScenarioOutcome',
    'ScenarioResult',
    'ScenarioStatus',
    'SeedDocument',
    'default_scenarios',
    'load_scenarios',
    'scenario_from_dict',
    'scenarios_from_dict',
]
