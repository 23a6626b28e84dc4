"""
Rule source handling for claimgate.

A rule set is a declarative document keyed by collection kind and operation.
Each entry holds one boolean condition tree and the reason reported when the
condition does not hold. Anything not listed is denied.

Example (YAML)::

    version: 1
    collections:
      admin_docs:
        create:
          allow_if:
            all:
              - authenticated: true
              - claim: admin
                equals: true
          deny_reason: missing admin claim
        read:
          allow_if:
            authenticated: true
          deny_reason: unauthenticated
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional
import logging

import aiofiles

from ..types.errors import RuleSourceError
from ..util.config import config_format, parse_config_text
from .conditions import (
    AuthenticatedCondition,
    ClaimCondition,
    CompoundCondition,
    Condition,
    PayloadPresentCondition,
)
from .types import OperationKind


logger = logging.getLogger(__name__)

SUPPORTED_VERSIONS = (1,)

DEFAULT_RULES_PATH = Path(__file__).parent / "policies" / "admin_docs.yaml"


@dataclass(frozen=True)
class Rule:
    """Allow condition for one (collection, operation) pair."""
    collection: str
    operation: OperationKind
    condition: Condition
    deny_reason: str

    @property
    def rule_id(self) -> str:
        return f"{self.collection}.{self.operation.value}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            'allow_if': self.condition.to_dict(),
            'deny_reason': self.deny_reason
        }


@dataclass(frozen=True)
class RuleSet:
    """
    Immutable rule table keyed by collection and operation.
    """
    rules: Mapping[str, Mapping[OperationKind, Rule]] = field(default_factory=dict)
    source: Optional[str] = None
    version: int = 1

    def collections(self):
        return sorted(self.rules)

    def has_collection(self, collection: str) -> bool:
        return collection in self.rules

    def rule_for(self, collection: str, operation: OperationKind) -> Optional[Rule]:
        """Return the rule for a collection/operation pair, or None."""
        return self.rules.get(collection, {}).get(operation)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'version': self.version,
            'collections': {
                collection: {
                    operation.value: rule.to_dict()
                    for operation, rule in sorted(ops.items(), key=lambda item: item[0].value)
                }
                for collection, ops in sorted(self.rules.items())
            }
        }


def parse_condition(node: Any, where: str = "allow_if") -> Condition:
    """
    Build a condition tree from its rule-source representation.

    Raises:
        RuleSourceError: If the node is not a recognized condition
    """
    if not isinstance(node, dict) or not node:
        raise RuleSourceError(f"{where}: condition must be a non-empty mapping, got {node!r}")

    keys = set(node)

    if keys == {'authenticated'}:
        return AuthenticatedCondition(_require_bool(node['authenticated'], f"{where}.authenticated"))

    if keys == {'payload_present'}:
        return PayloadPresentCondition(_require_bool(node['payload_present'], f"{where}.payload_present"))

    if keys in ({'claim'}, {'claim', 'equals'}):
        claim = node['claim']
        if not isinstance(claim, str) or not claim:
            raise RuleSourceError(f"{where}.claim: claim name must be a non-empty string")
        return ClaimCondition(claim, node.get('equals', True))

    if keys == {'all'} or keys == {'any'}:
        key = 'all' if 'all' in keys else 'any'
        items = node[key]
        if not isinstance(items, list) or not items:
            raise RuleSourceError(f"{where}.{key}: expected a non-empty list of conditions")
        children = [parse_condition(child, f"{where}.{key}[{i}]") for i, child in enumerate(items)]
        return CompoundCondition(children, "AND" if key == 'all' else "OR")

    if keys == {'not'}:
        return CompoundCondition([parse_condition(node['not'], f"{where}.not")], "NOT")

    raise RuleSourceError(f"{where}: unrecognized condition keys {sorted(keys)}")


def _require_bool(value: Any, where: str) -> bool:
    if not isinstance(value, bool):
        raise RuleSourceError(f"{where}: expected true or false, got {value!r}")
    return value


def parse_rule_set(data: Any, source: Optional[str] = None) -> RuleSet:
    """
    Build a RuleSet from a parsed rule document.

    Raises:
        RuleSourceError: If the document is malformed
    """
    if not isinstance(data, dict):
        raise RuleSourceError("Rule source must be a mapping", path=source)

    version = data.get('version', 1)
    if isinstance(version, bool) or version not in SUPPORTED_VERSIONS:
        raise RuleSourceError(f"Unsupported rule source version: {version!r}", path=source)

    collections = data.get('collections')
    if not isinstance(collections, dict):
        raise RuleSourceError("Rule source must define a 'collections' mapping", path=source)

    rules: Dict[str, Dict[OperationKind, Rule]] = {}

    for collection, operations in collections.items():
        if not isinstance(operations, dict):
            raise RuleSourceError(f"Collection '{collection}' must map operations to rules", path=source)

        collection_rules: Dict[OperationKind, Rule] = {}
        for op_name, entry in operations.items():
            try:
                operation = OperationKind(str(op_name))
            except ValueError:
                raise RuleSourceError(f"Unknown operation '{op_name}' in collection '{collection}'", path=source)

            if not isinstance(entry, dict) or 'allow_if' not in entry:
                raise RuleSourceError(f"{collection}.{op_name}: missing 'allow_if'", path=source)

            unknown = set(entry) - {'allow_if', 'deny_reason'}
            if unknown:
                raise RuleSourceError(f"{collection}.{op_name}: unknown keys {sorted(unknown)}", path=source)

            try:
                condition = parse_condition(entry['allow_if'], f"{collection}.{op_name}.allow_if")
            except RuleSourceError as e:
                raise RuleSourceError(e.message, path=source, cause=e)

            deny_reason = entry.get('deny_reason') or f"{op_name} on {collection} denied"
            collection_rules[operation] = Rule(
                collection=str(collection),
                operation=operation,
                condition=condition,
                deny_reason=str(deny_reason)
            )

        rules[str(collection)] = collection_rules

    logger.debug(f"Parsed rule set from {source or '<memory>'}: {sorted(rules)}")
    return RuleSet(rules=rules, source=source, version=version)


def parse_rule_text(text: str, format_type: str = 'yaml', source: Optional[str] = None) -> RuleSet:
    """Parse rule source text."""
    try:
        data = parse_config_text(text, format_type)
    except Exception as e:
        raise RuleSourceError(f"Rule source is not valid {format_type}: {e}", path=source, cause=e)
    return parse_rule_set(data, source)


async def load_rule_set(path: Optional[str] = None) -> RuleSet:
    """
    Load a rule set from a YAML or JSON file.

    Args:
        path: Rule source path; the packaged admin_docs rules when omitted

    Raises:
        RuleSourceError: If the file is missing, unreadable or malformed
    """
    rules_path = Path(path) if path else DEFAULT_RULES_PATH

    if not rules_path.is_file():
        raise RuleSourceError(f"Rule source not found: {rules_path}", path=str(rules_path))

    try:
        format_type = config_format(str(rules_path))
    except ValueError as e:
        raise RuleSourceError(str(e), path=str(rules_path), cause=e)

    try:
        async with aiofiles.open(rules_path, 'r', encoding='utf-8') as f:
            text = await f.read()
    except (OSError, UnicodeDecodeError) as e:
        raise RuleSourceError(f"Rule source {rules_path} unreadable: {e}", path=str(rules_path), cause=e)

    rule_set = parse_rule_text(text, format_type, str(rules_path))
    logger.info(f"Loaded rule set from {rules_path} ({len(rule_set.rules)} collections)")
    return rule_set
