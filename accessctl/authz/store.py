"""
Rule store for accessctl.

Rules are kept in declaration order and never change after the store is
built. Order is significant: the first rule that matches wins.
"""

import logging
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Sequence, Tuple

from ..types.errors import ValidationError
from ..util.config import load_config_file
from .conditions import parse_dsl
from .types import PermissionRule


logger = logging.getLogger(__name__)


def rule_from_dict(data: Mapping[str, Any]) -> PermissionRule:
    """
    Create a rule from its stored representation.

    Stored rules express conditions with the expression tree only:

        resource: orders
        action: read
        condition: {equals: [record.tenantId, context.tenantId]}
        fieldPermissions: {total: read, cost: none}
    """
    if not isinstance(data, Mapping):
        raise ValidationError("Rule must be a mapping", value=data)

    for key in ('resource', 'action'):
        if not isinstance(data.get(key), str) or not data.get(key):
            raise ValidationError(f"Rule {key} is required", field=key, value=data.get(key))

    condition = data.get('condition', data.get('dsl'))
    field_permissions = data.get('fieldPermissions', data.get('field_permissions'))
    if field_permissions is not None and not isinstance(field_permissions, Mapping):
        raise ValidationError(
            "fieldPermissions must be a mapping",
            field="fieldPermissions",
            value=field_permissions
        )

    return PermissionRule(
        resource=data['resource'],
        action=data['action'],
        condition=parse_dsl(condition) if condition is not None else None,
        field_permissions=field_permissions
    )


def rule_to_dict(rule: PermissionRule) -> Dict[str, Any]:
    """Convert a rule to its stored representation."""
    data: Dict[str, Any] = {'resource': rule.resource, 'action': rule.action}
    if rule.condition is not None:
        data['condition'] = rule.condition.to_dict()
    if rule.field_permissions is not None:
        data['fieldPermissions'] = {
            name: level.value for name, level in rule.field_permissions.items()
        }
    return data


class RuleStore(Sequence[PermissionRule]):
    """
    Ordered, immutable collection of permission rules.

    Safe to share across concurrent evaluations.
    """

    def __init__(self, rules: Iterable[PermissionRule] = ()):
        self._rules: Tuple[PermissionRule, ...] = tuple(rules)
        for rule in self._rules:
            if not isinstance(rule, PermissionRule):
                raise ValidationError("RuleStore accepts PermissionRule instances only", value=rule)

    def __getitem__(self, index):
        return self._rules[index]

    def __len__(self) -> int:
        return len(self._rules)

    def __iter__(self) -> Iterator[PermissionRule]:
        return iter(self._rules)

    def __repr__(self) -> str:
        return f"RuleStore({len(self._rules)} rules)"

    def for_request(self, resource: str, action: str) -> List[PermissionRule]:
        """Rules covering a resource/action pair, in declaration order."""
        return [rule for rule in self._rules if rule.matches(resource, action)]

    def resources(self) -> List[str]:
        """Distinct resources named by the rules, in first-seen order."""
        return list(dict.fromkeys(rule.resource for rule in self._rules))

    def to_dicts(self) -> List[Dict[str, Any]]:
        return [rule_to_dict(rule) for rule in self._rules]

    @classmethod
    def from_dicts(cls, data: Iterable[Mapping[str, Any]]) -> 'RuleStore':
        """Create a store from stored rule representations."""
        return cls(rule_from_dict(item) for item in data)

    @classmethod
    def from_file(cls, file_path: str) -> 'RuleStore':
        """
        Load rules from a JSON or YAML policy file.

        The document is either a list of rules or a mapping with a ``rules`` key.
        """
        document = load_config_file(file_path)
        if isinstance(document, Mapping):
            document = document.get('rules')
        if not isinstance(document, list):
            raise ValidationError(
                f"Policy file {file_path} must contain a list of rules",
                field="rules"
            )

        store = cls.from_dicts(document)
        logger.info(f"Loaded {len(store)} rules from {file_path}")
        return store

