# Copyright (c) 2025 Gimel Foundation and the persons identified as the document authors.
# All rights reserved. This file is subject to the Gimel Foundation's Legal Provisions Relating to GiFo Documents.
# See http://GimelFoundation.com or https://github.com/Gimel-Foundation for details.
# Code Components extracted from GiFo-RfC 0111 must include this license text and are provided without warranty.

"""
Package authz implements rule matching, the condition language and
field-level permission resolution.
"""

from .types import (
    AccessLevel,
    UserContext,
    RecordContext,
    PermissionRule,
    AccessEvaluationResult,
)

from .conditions import (
    Condition,
    PredicateCondition,
    Equals,
    And,
    Or,
    UnknownNode,
    DslNode,
    UNRESOLVED,
    evaluate_condition,
    parse_dsl,
    resolve_path,
)

from .store import (
    RuleStore,
    rule_from_dict,
    rule_to_dict,
)

from .authz import (
    AccessEvaluator,
    evaluate_access,
    NO_MATCHING_RULE,
)

__all__ = [
    # Types
    'AccessLevel',
    'UserContext',
    'RecordContext',
    'PermissionRule',
    'AccessEvaluationResult',

    # Conditions
    'Condition',
    'PredicateCondition',
    'Equals',
    'And',
    'Or',
    'UnknownNode',
    'DslNode',
    'UNRESOLVED',
    'evaluate_condition',
    'parse_dsl',
    'resolve_path',

    # Rule store
    'RuleStore',
    'rule_from_dict',
    'rule_to_dict',

    # Core authorization
    'AccessEvaluator',
    'evaluate_access',
    'NO_MATCHING_RULE',
]
