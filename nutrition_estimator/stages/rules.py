"""
Keyword classifiers and tier cascades shared by all stages.

Every keyword decision in the estimator (dish category, ingredient category,
cooking method, unit guess) is an ordered table of KeywordRule rows loaded
from YAML. The first rule whose keywords appear in the text wins, so table
order is the tie-break.

Tier cascades (recipe lookup, nutrition matching, dish classification) are
ordered lists of (tier_name, fn) pairs; the first non-None result wins.
"""
import logging
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple, TypeVar

from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)

T = TypeVar("T")

Tier = Tuple[str, Callable[..., Optional[T]]]


def contains_any(text: str, keywords: Iterable[str]) -> bool:
    """Substring test against a lowercased text."""
    text = text.lower()
    return any(k.lower() in text for k in keywords)


class KeywordRule(BaseModel):
    """
    One row of an ordered keyword table.

    A rule matches when the text contains any of ``any_of`` (an empty list
    matches everything, used for catch-all rows) and, if given, also any of
    ``also_any_of``. ``wet_label`` splits the row on ``wet_any_of``
    (gravy/curry style keywords) so one row covers a wet/dry pair.
    """
    label: str
    any_of: List[str] = Field(default_factory=list)
    also_any_of: List[str] = Field(default_factory=list)
    wet_label: Optional[str] = None
    wet_any_of: List[str] = Field(default_factory=list)
    value: Optional[Any] = None  # Payload (factor, unit, ...) carried by the row

    @field_validator('any_of', 'also_any_of', 'wet_any_of')
    @classmethod
    def lowercase_keywords(cls, v):
        return [k.lower() for k in v]

    def matches(self, text: str) -> bool:
        if self.any_of and not contains_any(text, self.any_of):
            return False
        if self.also_any_of and not contains_any(text, self.also_any_of):
            return False
        return True

    def resolve(self, text: str) -> str:
        """Label for a matching text, taking the wet/dry split into account."""
        if self.wet_label and contains_any(text, self.wet_any_of):
            return self.wet_label
        return self.label


def build_rules(rows: Sequence[Dict[str, Any]]) -> List[KeywordRule]:
    """Validate raw YAML rows into KeywordRule objects (order preserved)."""
    return [KeywordRule(**row) for row in rows]


def first_rule(rules: Sequence[KeywordRule], text: str) -> Optional[KeywordRule]:
    """Return the first rule matching text, or None."""
    for rule in rules:
        if rule.matches(text):
            return rule
    return None


def classify(rules: Sequence[KeywordRule], text: str, default: Optional[str] = None) -> Optional[str]:
    """Map free text to a label via the first matching rule."""
    rule = first_rule(rules, text)
    if rule is None:
        return default
    return rule.resolve(text)


def run_cascade(tiers: Sequence[Tier], *args) -> Tuple[Optional[str], Optional[T]]:
    """
    Try each tier in order and short-circuit on the first hit.

    Args:
        tiers: Ordered (tier_name, fn) pairs; fn returns None on a miss
        *args: Passed unchanged to every tier

    Returns:
        (tier_name, result) of the first hit, or (None, None) if all tiers miss
    """
    for name, fn in tiers:
        result = fn(*args)
        if result is not None:
            logger.debug("[CASCADE] %s hit via tier=%s", fn.__name__, name)
            return name, result
    return None, None
