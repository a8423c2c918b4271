"""Regex category rules and the matcher built from them.

Rules are evaluated in list order and every match is collected, so one event
can belong to several categories at once (for example ``Work > Coding`` and
``Communication``). The first match is the event's primary category.

A matcher is an immutable snapshot. ``CategoryStore.reload`` builds a new one
and swaps the reference, so concurrent readers never see a half-built list.
"""

from __future__ import annotations

import json
import logging
import os
import re
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Optional

logger = logging.getLogger(__name__)

PATH_SEPARATOR = " > "


@dataclass(frozen=True)
class CategoryRule:
    id: int
    name: tuple[str, ...]
    rule_type: str = "regex"
    regex: Optional[str] = None
    ignore_case: bool = False
    color: Optional[str] = None
    score: Optional[float] = None

    @property
    def path(self) -> str:
        return PATH_SEPARATOR.join(self.name)


class CategoryMatcher:
    """Ordered, compiled rule set."""

    def __init__(self, rules: Iterable[CategoryRule] = ()):
        self.rules: tuple[CategoryRule, ...] = tuple(rules)
        compiled = []
        for rule in self.rules:
            if rule.rule_type != "regex" or not rule.regex:
                continue
            flags = re.IGNORECASE if rule.ignore_case else 0
            try:
                compiled.append((re.compile(rule.regex, flags), rule.path))
            except re.error as exc:
                logger.warning("Invalid regex in category %s: %s", rule.path, exc)
        self._compiled = tuple(compiled)

    def __len__(self) -> int:
        return len(self._compiled)

    def match(self, app: str, title: str) -> list[str]:
        text = f"{app} {title}"
        return [path for pattern, path in self._compiled if pattern.search(text)]

    def primary(self, app: str, title: str) -> Optional[str]:
        matches = self.match(app, title)
        return matches[0] if matches else None


def _rule_from_item(item: dict, index: int, parent: tuple[str, ...], next_id: int) -> CategoryRule:
    raw_name = item.get("name")
    if isinstance(raw_name, (list, tuple)):
        name = tuple(str(part) for part in raw_name)
    elif raw_name:
        name = parent + (str(raw_name),)
    else:
        raise ValueError(f"Category {index}: missing name")

    rule = item.get("rule") or {}
    data = item.get("data") or {}
    return CategoryRule(
        id=int(item.get("id", next_id)),
        name=name,
        rule_type=str(rule.get("type", "none")),
        regex=rule.get("regex"),
        ignore_case=bool(rule.get("ignore_case", False)),
        color=data.get("color"),
        score=data.get("score"),
    )


def rules_from_json(payload: Any) -> list[CategoryRule]:
    """Build rules from tracker settings or the nested ``children`` format."""

    if not isinstance(payload, list):
        raise ValueError("Categories must be a list")

    rules: list[CategoryRule] = []

    def visit(item: Any, index: int, parent: tuple[str, ...]) -> None:
        if not isinstance(item, dict):
            raise ValueError(f"Category {index}: expected an object")
        rule = _rule_from_item(item, index, parent, next_id=len(rules))
        rules.append(rule)
        for child in item.get("children") or []:
            visit(child, index, rule.name)

    for index, item in enumerate(payload):
        visit(item, index, ())
    return rules


class CategoryStore:
    """Holds the current matcher snapshot for a session."""

    def __init__(self, rules: Iterable[CategoryRule] = ()):
        self._matcher = CategoryMatcher(rules)

    @property
    def matcher(self) -> CategoryMatcher:
        return self._matcher

    def has_categories(self) -> bool:
        return len(self._matcher) > 0

    def reload(self, loader: Callable[[], Iterable[CategoryRule]]) -> CategoryMatcher:
        matcher = CategoryMatcher(loader())
        self._matcher = matcher
        logger.info("Loaded %d category rules", len(matcher.rules))
        return matcher

    def load_from_env(self, env: Optional[dict] = None) -> CategoryMatcher:
        env = os.environ if env is None else env
        raw = env.get("AW_CATEGORIES")
        if not raw:
            logger.info("No categories configured")
            return self._matcher
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError as exc:
            logger.error("Failed to parse AW_CATEGORIES: %s", exc)
            return self._matcher
        return self.reload(lambda: rules_from_json(payload))
