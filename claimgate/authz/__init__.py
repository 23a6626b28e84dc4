# Copyright (c) 2025 Gimel Foundation and the persons identified as the document authors.
# All rights reserved. This file is subject to the Gimel Foundation's Legal Provisions Relating to GiFo Documents.
# See http://GimelFoundation.com or https://github.com/Gimel-Foundation for details.
# Code Components extracted from GiFo-RfC 0111 must include this license text and are provided without warranty.

"""
Package authz implements the access-control policy: the rule source, its
condition nodes and the pure decision function evaluated per operation.
"""

from .types import (
    ADMIN_DOCS,
    AccessRequest,
    Decision,
    Operation,
    OperationKind,
    Resource,
)

from .conditions import (
    Condition,
    AuthenticatedCondition,
    ClaimCondition,
    PayloadPresentCondition,
    CompoundCondition,
    all_of,
    any_of,
    not_,
)

from .rules import (
    DEFAULT_RULES_PATH,
    Rule,
    RuleSet,
    load_rule_set,
    parse_condition,
    parse_rule_set,
    parse_rule_text,
)

from .engine import (
    PolicyEngine,
    REASON_UNAUTHENTICATED,
)

__all__ = [
    # Types
    'ADMIN_DOCS',
    'AccessRequest',
    'Decision',
    'Operation',
    'OperationKind',
    'Resource',

    # Conditions
    'Condition',
    'AuthenticatedCondition',
    'ClaimCondition',
    'PayloadPresentCondition',
    'CompoundCondition',
    'all_of',
    'any_of',
    'not_',

    # Rule source
    'DEFAULT_RULES_PATH',
    'Rule',
    'RuleSet',
    'load_rule_set',
    'parse_condition',
    'parse_rule_set',
    'parse_rule_text',

    # Engine
    'PolicyEngine',
    'REASON_UNAUTHENTICATED',
]
