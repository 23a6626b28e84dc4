"""
Scenario files.

Scenarios can be kept in YAML or JSON:

    scenarios:
      - name: admin creates admin document
        principal: {key: adminUid, claims: {admin: true}}
        operation: create
        resource: admin_docs/doc1
        payload: {title: Admin Doc}
        expect: succeed
      - name: admin claim mutation is idempotent
        type: claim_mutation
        identifier: admin@example.com
        users: [{key: adminUser, email: admin@example.com}]
"""

import logging
from typing import Any, Dict, List

import yaml

from ..authz.types import Operation, OperationKind, Resource
from ..types.errors import ValidationError
from ..util.config import load_config_file
from .scenarios import (
    ClaimGrant,
    ClaimMutationScenario,
    DirectoryUser,
    Expectation,
    OperationScenario,
    PrincipalSpec,
    Scenario,
    SeedDocument,
)


logger = logging.getLogger(__name__)

OPERATION = "operation"
CLAIM_MUTATION = "claim_mutation"


def _require(entry: Dict[str, Any], key: str, name: str) -> Any:
    if key not in entry:
        raise ValidationError(f"Scenario '{name}' is missing '{key}'", field=key)
    return entry[key]


def _expectation(value: Any, name: str) -> Expectation:
    try:
        return Expectation(str(value).lower())
    except ValueError:
        raise ValidationError(
            f"Scenario '{name}' has unknown expectation '{value}'",
            field='expect',
            value=value
        )


def _flag(mapping: Dict[str, Any], key: str, default: bool, name: str) -> bool:
    value = mapping.get(key, default)
    if not isinstance(value, bool):
        raise ValidationError(
            f"Scenario '{name}': '{key}' must be true or false, got {value!r}",
            field=key,
            value=value
        )
    return value


def _users(entries: Any) -> List[DirectoryUser]:
    return [
        DirectoryUser(key=u['key'], email=u.get('email'), claims=dict(u.get('claims') or {}))
        for u in entries or []
    ]


def scenario_from_dict(entry: Dict[str, Any]) -> Scenario:
    """Build a scenario from its dictionary form."""
    if not isinstance(entry, dict):
        raise ValidationError("Scenario entries must be mappings", value=entry)
    name = _require(entry, 'name', '<unnamed>')
    kind = entry.get('type', OPERATION)

    try:
        if kind == CLAIM_MUTATION:
            return ClaimMutationScenario(
                name,
                identifier=_require(entry, 'identifier', name),
                claim=entry.get('claim', 'admin'),
                value=entry.get('value', True),
                repeat=int(entry.get('repeat', 2)),
                users=_users(entry.get('users')),
                description=entry.get('description', '')
            )

        if kind != OPERATION:
            raise ValidationError(f"Scenario '{name}' has unknown type '{kind}'", field='type', value=kind)

        principal = _require(entry, 'principal', name)
        return OperationScenario(
            name,
            principal=PrincipalSpec(
                key=principal['key'],
                authenticated=_flag(principal, 'authenticated', True, name),
                claims=dict(principal.get('claims') or {}),
                email=principal.get('email'),
                from_directory=_flag(principal, 'from_directory', False, name)
            ),
            operation=Operation(
                OperationKind.parse(_require(entry, 'operation', name)),
                Resource.parse(_require(entry, 'resource', name)),
                entry.get('payload')
            ),
            expected=_expectation(_require(entry, 'expect', name), name),
            expected_reason=entry.get('reason'),
            seed=[
                SeedDocument(path=d['path'], data=dict(d.get('data') or {}), created_by=d.get('created_by'))
                for d in entry.get('seed') or []
            ],
            users=_users(entry.get('users')),
            claim_grants=[
                ClaimGrant(identifier=g['identifier'], claim=g.get('claim', 'admin'), value=g.get('value', True))
                for g in entry.get('claim_grants') or []
            ],
            description=entry.get('description', '')
        )
    except (KeyError, TypeError, ValueError) as e:
        raise ValidationError(f"Scenario '{name}' is malformed: {e}", value=entry)


def scenarios_from_dict(data: Dict[str, Any]) -> List[Scenario]:
    """Build scenarios from a parsed scenario file."""
    if not isinstance(data, dict) or not isinstance(data.get('scenarios'), list):
        raise ValidationError("Scenario file must contain a 'scenarios' list", field='scenarios')
    scenarios = [scenario_from_dict(entry) for entry in data['scenarios']]

    names = [s.name for s in scenarios]
    duplicates = sorted({n for n in names if names.count(n) > 1})
    if duplicates:
        raise ValidationError(f"Duplicate scenario names: {', '.join(duplicates)}", field='name')
    return scenarios


async def load_scenarios(path: str) -> List[Scenario]:
    """
    Load scenarios from a YAML or JSON file.

    Raises:
        ValidationError: If the file cannot be read or is malformed
    """
    try:
        data = await load_config_file(path)
    except OSError as e:
        raise ValidationError(f"Cannot read scenario file {path}: {e}", field='scenarios_path', value=path)
    except (ValueError, yaml.YAMLError) as e:
        raise ValidationError(f"Cannot parse scenario file {path}: {e}", field='scenarios_path', value=path)

    scenarios = scenarios_from_dict(data)
    logger.info(f"Loaded {len(scenarios)} scenarios from {path}")
    return scenarios
