"""
Storage-agnostic filter predicates.

A composed query is a tree of small immutable nodes. Storage adapters read
the tree (or its Mongo-style ``to_dict()`` rendering); in-process callers
and tests can ``evaluate()`` a node against a record directly.

Field paths are dotted and fan out through lists, so
``In("category_refs.category_id", ids)`` holds when any reference matches.
A field whose value is missing or None does not exist.
"""

import re
from dataclasses import dataclass, field as dataclass_field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple

from core.utils import resolve_path


def _comparable(value: Any) -> Any:
    if isinstance(value, datetime) and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _render(value: Any) -> Any:
    if isinstance(value, datetime):
        return _comparable(value).isoformat()
    return value


class Predicate:
    """Base node."""

    def evaluate(self, record: Any) -> bool:
        raise NotImplementedError

    def to_dict(self) -> Dict[str, Any]:
        raise NotImplementedError

    def __and__(self, other: "Predicate") -> "Predicate":
        return conjoin([self, other])

    def __or__(self, other: "Predicate") -> "Predicate":
        return disjoin([self, other])

    def __invert__(self) -> "Predicate":
        return Not(self)


# ============================================================================
# Leaf Nodes
# ============================================================================

@dataclass(frozen=True)
class Eq(Predicate):
    field: str
    value: Any

    def evaluate(self, record: Any) -> bool:
        return any(v == self.value for v in resolve_path(record, self.field))

    def to_dict(self) -> Dict[str, Any]:
        return {self.field: _render(self.value)}


@dataclass(frozen=True)
class In(Predicate):
    field: str
    values: Tuple[Any, ...]

    def __post_init__(self):
        object.__setattr__(self, "values", tuple(self.values))

    def evaluate(self, record: Any) -> bool:
        wanted = set(self.values)
        return any(v in wanted for v in resolve_path(record, self.field))

    def to_dict(self) -> Dict[str, Any]:
        return {self.field: {"$in": [_render(v) for v in self.values]}}


@dataclass(frozen=True)
class Matches(Predicate):
    """Case-insensitive regex match against any value at ``field``."""

    field: str
    patterns: Tuple[str, ...]
    _compiled: Tuple[re.Pattern, ...] = dataclass_field(init=False, repr=False, compare=False)

    def __post_init__(self):
        patterns = tuple(self.patterns)
        object.__setattr__(self, "patterns", patterns)
        object.__setattr__(self, "_compiled", tuple(re.compile(p, re.IGNORECASE) for p in patterns))

    def evaluate(self, record: Any) -> bool:
        for value in resolve_path(record, self.field):
            text = value if isinstance(value, str) else str(value)
            if any(p.search(text) for p in self._compiled):
                return True
        return False

    def to_dict(self) -> Dict[str, Any]:
        if len(self.patterns) == 1:
            regex = self.patterns[0]
        else:
            regex = "|".join(f"(?:{p})" for p in self.patterns)
        return {self.field: {"$regex": regex, "$options": "i"}}


@dataclass(frozen=True)
class Range(Predicate):
    field: str
    gte: Any = None
    lte: Any = None
    gt: Any = None
    lt: Any = None

    def _bounds(self) -> List[Tuple[str, Any]]:
        return [(op, getattr(self, op)) for op in ("gte", "gt", "lte", "lt") if getattr(self, op) is not None]

    def _holds(self, value: Any) -> bool:
        value = _comparable(value)
        for op, bound in self._bounds():
            bound = _comparable(bound)
            try:
                if op == "gte" and not value >= bound:
                    return False
                if op == "gt" and not value > bound:
                    return False
                if op == "lte" and not value <= bound:
                    return False
                if op == "lt" and not value < bound:
                    return False
            except TypeError:
                return False
        return True

    def evaluate(self, record: Any) -> bool:
        return any(self._holds(v) for v in resolve_path(record, self.field))

    def to_dict(self) -> Dict[str, Any]:
        return {self.field: {f"${op}": _render(bound) for op, bound in self._bounds()}}


@dataclass(frozen=True)
class Exists(Predicate):
    field: str
    exists: bool = True

    def evaluate(self, record: Any) -> bool:
        return bool(resolve_path(record, self.field)) == self.exists

    def to_dict(self) -> Dict[str, Any]:
        return {self.field: {"$exists": self.exists}}


@dataclass(frozen=True)
class Never(Predicate):
    """Matches nothing. Stands in for a selection that resolved to zero ids."""

    reason: Optional[str] = None

    def evaluate(self, record: Any) -> bool:
        return False

    def to_dict(self) -> Dict[str, Any]:
        return {"_id": {"$in": []}}


# ============================================================================
# Combinators
# ============================================================================

@dataclass(frozen=True)
class Not(Predicate):
    child: Predicate

    def evaluate(self, record: Any) -> bool:
        return not self.child.evaluate(record)

    def to_dict(self) -> Dict[str, Any]:
        return {"$nor": [self.child.to_dict()]}


@dataclass(frozen=True)
class And(Predicate):
    children: Tuple[Predicate, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "children", tuple(self.children))

    def evaluate(self, record: Any) -> bool:
        return all(child.evaluate(record) for child in self.children)

    def to_dict(self) -> Dict[str, Any]:
        if not self.children:
            return {}
        if len(self.children) == 1:
            return self.children[0].to_dict()
        return {"$and": [child.to_dict() for child in self.children]}


@dataclass(frozen=True)
class Or(Predicate):
    children: Tuple[Predicate, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "children", tuple(self.children))

    def evaluate(self, record: Any) -> bool:
        return any(child.evaluate(record) for child in self.children)

    def to_dict(self) -> Dict[str, Any]:
        if len(self.children) == 1:
            return self.children[0].to_dict()
        return {"$or": [child.to_dict() for child in self.children]}


def conjoin(predicates: Iterable[Optional[Predicate]]) -> Predicate:
    """AND the given predicates, flattening nested Ands and skipping None."""
    flat: List[Predicate] = []
    for p in predicates:
        if p is None:
            continue
        if isinstance(p, And):
            flat.extend(p.children)
        else:
            flat.append(p)
    if len(flat) == 1:
        return flat[0]
    return And(tuple(flat))


def disjoin(predicates: Iterable[Optional[Predicate]]) -> Predicate:
    """OR the given predicates, flattening nested Ors and skipping None."""
    flat: List[Predicate] = []
    for p in predicates:
        if p is None:
            continue
        if isinstance(p, Or):
            flat.extend(p.children)
        else:
            flat.append(p)
    if len(flat) == 1:
        return flat[0]
    return Or(tuple(flat))
