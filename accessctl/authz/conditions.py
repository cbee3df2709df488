"""
Authorization conditions for accessctl.

A condition is either a native predicate over ``(context, record)`` or a
policy expression tree built from three node kinds:

    Equals(path_a, path_b)   both paths resolved and compared
    And([...])               all children true; empty is true
    Or([...])                any child true; empty is false

Paths are prefixed with ``context.`` or ``record.``. A path that cannot be
resolved yields ``UNRESOLVED``, which is never equal to anything, not even
another unresolved path.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Union


logger = logging.getLogger(__name__)

CONTEXT_PREFIX = "context."
RECORD_PREFIX = "record."


class _Unresolved:
    """Marker for a path that did not resolve to a value."""

    __slots__ = ()

    def __eq__(self, other: Any) -> bool:
        return False

    def __ne__(self, other: Any) -> bool:
        return True

    __hash__ = object.__hash__

    def __repr__(self) -> str:
        return "UNRESOLVED"


UNRESOLVED = _Unresolved()


def resolve_path(path: str, context: Any, record: Any) -> Any:
    """
    Resolve a ``context.X`` or ``record.X`` path.

    Returns ``UNRESOLVED`` for unknown prefixes, a missing record, or an
    attribute the target does not carry.
    """
    if path.startswith(CONTEXT_PREFIX):
        target, name = context, path[len(CONTEXT_PREFIX):]
    elif path.startswith(RECORD_PREFIX):
        target, name = record, path[len(RECORD_PREFIX):]
    else:
        return UNRESOLVED

    if target is None or not name:
        return UNRESOLVED
    getter = getattr(target, 'get', None)
    if getter is not None:
        return getter(name, UNRESOLVED)
    return getattr(target, name, UNRESOLVED)


class Condition(ABC):
    """Policy condition evaluated against a subject context and an optional record."""

    @abstractmethod
    def evaluate(self, context: Any, record: Any = None) -> bool:
        """
        Evaluate the condition.

        Args:
            context: The resolved subject context
            record: The record being accessed, or None for resource-level checks

        Returns:
            bool: True if condition is satisfied, False otherwise
        """
        pass

    @abstractmethod
    def to_dict(self) -> Dict[str, Any]:
        """Convert condition to dictionary representation."""
        pass


class PredicateCondition(Condition):
    """
    Native predicate condition.

    Exceptions raised by the predicate propagate to the caller.
    """

    def __init__(self, predicate: Callable[[Any, Any], bool], name: Optional[str] = None):
        self.predicate = predicate
        self.name = name or getattr(predicate, '__name__', 'predicate')

    def evaluate(self, context: Any, record: Any = None) -> bool:
        return bool(self.predicate(context, record))

    def to_dict(self) -> Dict[str, Any]:
        return {'predicate': self.name}

    def __repr__(self) -> str:
        return f"PredicateCondition({self.name})"


class Equals(Condition):
    """Equality of two resolved paths."""

    def __init__(self, left: str, right: str):
        self.left = left
        self.right = right

    def evaluate(self, context: Any, record: Any = None) -> bool:
        a = resolve_path(self.left, context, record)
        b = resolve_path(self.right, context, record)
        if a is UNRESOLVED or b is UNRESOLVED:
            return False
        return a == b

    def to_dict(self) -> Dict[str, Any]:
        return {'equals': [self.left, self.right]}

    def __repr__(self) -> str:
        return f"Equals({self.left!r}, {self.right!r})"


class And(Condition):
    """Conjunction; stops at the first false child."""

    def __init__(self, children: Sequence[Condition] = ()):
        self.children: List[Condition] = list(children)

    def evaluate(self, context: Any, record: Any = None) -> bool:
        for child in self.children:
            if not evaluate_condition(child, context, record):
                return False
        return True

    def to_dict(self) -> Dict[str, Any]:
        return {'and': [child.to_dict() for child in self.children]}

    def __repr__(self) -> str:
        return f"And({self.children!r})"


class Or(Condition):
    """Disjunction; stops at the first true child."""

    def __init__(self, children: Sequence[Condition] = ()):
        self.children: List[Condition] = list(children)

    def evaluate(self, context: Any, record: Any = None) -> bool:
        for child in self.children:
            if evaluate_condition(child, context, record):
                return True
        return False

    def to_dict(self) -> Dict[str, Any]:
        return {'or': [child.to_dict() for child in self.children]}

    def __repr__(self) -> str:
        return f"Or({self.children!r})"


class UnknownNode(Condition):
    """An expression node of unrecognized shape. Always false."""

    def __init__(self, data: Any):
        self.data = data

    def evaluate(self, context: Any, record: Any = None) -> bool:
        return False

    def to_dict(self) -> Dict[str, Any]:
        return {'unknown': self.data}

    def __repr__(self) -> str:
        return f"UnknownNode({self.data!r})"


DslNode = Union[Equals, And, Or, UnknownNode]


def evaluate_condition(condition: Any, context: Any, record: Any = None) -> bool:
    """
    Evaluate a condition against a context/record pair.

    Anything that is not a ``Condition`` is treated as an unrecognized node
    and evaluates to False.
    """
    if isinstance(condition, Condition):
        return condition.evaluate(context, record)
    logger.warning(f"Unrecognized condition {condition!r}; denying")
    return False


def parse_dsl(data: Any) -> DslNode:
    """
    Build an expression tree from its stored shape.

    ``{"equals": [a, b]}``, ``{"and": [...]}`` and ``{"or": [...]}`` are
    recognized; anything else becomes an ``UnknownNode``.
    """
    if not isinstance(data, Mapping) or len(data) != 1:
        logger.warning(f"Unrecognized policy expression: {data!r}")
        return UnknownNode(data)

    (tag, value), = data.items()

    if tag == 'equals':
        if (isinstance(value, (list, tuple)) and len(value) == 2
                and all(isinstance(p, str) for p in value)):
            return Equals(value[0], value[1])
    elif tag in ('and', 'or'):
        if isinstance(value, (list, tuple)):
            children = [parse_dsl(child) for child in value]
            return And(children) if tag == 'and' else Or(children)

    logger.warning(f"Unrecognized policy expression: {data!r}")
    return UnknownNode(data)


def as_condition(value: Any) -> Optional[Condition]:
    """Coerce a callable or stored expression into a ``Condition``."""
    if value is None or isinstance(value, Condition):
        return value
    if isinstance(value, Mapping):
        return parse_dsl(value)
    if callable(value):
        return PredicateCondition(value)
    logger.warning(f"Unrecognized condition {value!r}; denying")
    return UnknownNode(value)
