"""Rule matching: pick the best similarity pattern for a description.

Each stored rule compiles into one of four pattern classes. Unknown
``pattern_type`` values compile to :class:`ContainsPattern`, so rules written
for a newer rule type still do something sensible here.
"""

import enum
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Protocol

import structlog

logger = structlog.get_logger()


class PatternType(str, enum.Enum):
    EXACT = "exact"
    CONTAINS = "contains"
    STARTS_WITH = "starts_with"
    REGEX = "regex"


class Rule(Protocol):
    id: int
    pattern_type: str
    pattern_value: str
    category_id: int | None
    parent_category_id: int | None
    confidence_score: float | None


@dataclass(frozen=True)
class ExactPattern:
    value: str

    def matches(self, description: str) -> bool:
        return description.lower() == self.value.lower()


@dataclass(frozen=True)
class ContainsPattern:
    value: str

    def matches(self, description: str) -> bool:
        return self.value.lower() in description.lower()


@dataclass(frozen=True)
class StartsWithPattern:
    value: str

    def matches(self, description: str) -> bool:
        return description.lower().startswith(self.value.lower())


@dataclass(frozen=True)
class RegexPattern:
    """Case-insensitive regex search. An invalid expression never matches."""

    value: str
    compiled: re.Pattern | None = field(init=False, compare=False, repr=False)

    def __post_init__(self):
        try:
            compiled = re.compile(self.value, re.IGNORECASE)
        except re.error as exc:
            logger.warning("invalid_regex_pattern", pattern=self.value, error=str(exc))
            compiled = None
        object.__setattr__(self, "compiled", compiled)

    def matches(self, description: str) -> bool:
        if self.compiled is None:
            return False
        return self.compiled.search(description) is not None


Pattern = ExactPattern | ContainsPattern | StartsWithPattern | RegexPattern

_PATTERN_CLASSES: dict[str, type] = {
    PatternType.EXACT.value: ExactPattern,
    PatternType.CONTAINS.value: ContainsPattern,
    PatternType.STARTS_WITH.value: StartsWithPattern,
    PatternType.REGEX.value: RegexPattern,
}


def compile_pattern(pattern_type: str | None, value: str) -> Pattern:
    pattern_cls = _PATTERN_CLASSES.get(pattern_type or "", ContainsPattern)
    return pattern_cls(value or "")


def rule_confidence(rule: Rule) -> float:
    return 1.0 if rule.confidence_score is None else float(rule.confidence_score)


@dataclass(frozen=True)
class PatternMatch:
    rule: Rule
    pattern_id: int
    category_id: int
    parent_category_id: int | None = None
    confidence: float = 1.0


@dataclass(frozen=True)
class _CompiledRule:
    rule: Rule
    pattern: Pattern
    pattern_id: int
    category_id: int | None
    parent_category_id: int | None
    confidence: float


class RuleSet:
    """A rule list compiled once and reused across many descriptions.

    ``first_child_by_parent`` maps a parent category id to the id of its
    first child by name; it is how rules that only name a parent category
    resolve to something assignable.
    """

    def __init__(
        self,
        rules: Iterable[Rule],
        first_child_by_parent: Mapping[int, int] | None = None,
    ):
        # Rule attributes are copied now; the ORM rows may be expired later
        self._compiled = [
            _CompiledRule(
                rule=rule,
                pattern=compile_pattern(rule.pattern_type, rule.pattern_value),
                pattern_id=rule.id,
                category_id=rule.category_id,
                parent_category_id=rule.parent_category_id,
                confidence=rule_confidence(rule),
            )
            for rule in rules
        ]
        self._first_child_by_parent = dict(first_child_by_parent or {})

    def __len__(self) -> int:
        return len(self._compiled)

    def best_match(self, description: str | None) -> PatternMatch | None:
        if not description:
            return None

        best: _CompiledRule | None = None
        for compiled in self._compiled:
            if not compiled.pattern.matches(description):
                continue
            # Strictly greater: on a tie the earlier rule stays
            if best is None or compiled.confidence > best.confidence:
                best = compiled

        if best is None:
            return None

        category_id = best.category_id
        if category_id is None:
            category_id = self._first_child_by_parent.get(best.parent_category_id)
            if category_id is None:
                logger.info(
                    "pattern_match_unresolved",
                    pattern_id=best.pattern_id,
                    parent_category_id=best.parent_category_id,
                )
                return None

        return PatternMatch(
            rule=best.rule,
            pattern_id=best.pattern_id,
            category_id=category_id,
            parent_category_id=best.parent_category_id,
            confidence=best.confidence,
        )


def find_best_match(
    description: str | None,
    rules: Iterable[Rule],
    first_child_by_parent: Mapping[int, int] | None = None,
) -> PatternMatch | None:
    """Return the highest-confidence rule matching ``description``, if any."""
    return RuleSet(rules, first_child_by_parent).best_match(description)


class PatternMatcher:
    """Store-backed matcher used by the interactive and creation paths."""

    def __init__(self, rule_store, category_store):
        self.rule_store = rule_store
        self.category_store = category_store

    async def load(self) -> RuleSet:
        rules = await self.rule_store.list_patterns()
        first_children = await self.category_store.first_child_by_parent()
        return RuleSet(rules, first_children)

    async def match(self, description: str | None) -> PatternMatch | None:
        if not description:
            return None
        rule_set = await self.load()
        return rule_set.best_match(description)
