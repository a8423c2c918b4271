import json
import logging

import pytest

from activity_timeline.categories import CategoryMatcher, CategoryRule, CategoryStore, rules_from_json

SETTINGS = [
    {"id": 1, "name": ["Work", "Coding"], "rule": {"type": "regex", "regex": "Code|vim"}},
    {"id": 2, "name": ["Communication"], "rule": {"type": "regex", "regex": "slack", "ignore_case": True}},
    {"id": 3, "name": ["Work"], "rule": {"type": "none"}},
]


def test_match_collects_every_rule_in_order():
    matcher = CategoryMatcher(rules_from_json(SETTINGS))
    assert len(matcher) == 2
    assert matcher.match("Code", "Slack thread review") == ["Work > Coding", "Communication"]
    assert matcher.primary("Code", "main.py") == "Work > Coding"
    assert matcher.primary("Finder", "Downloads") is None


def test_invalid_regex_is_skipped_and_logged(caplog):
    rules = [CategoryRule(1, ("Bad",), regex="("), CategoryRule(2, ("Browsing",), regex="Firefox")]
    with caplog.at_level(logging.WARNING):
        matcher = CategoryMatcher(rules)
    assert matcher.match("Firefox", "news") == ["Browsing"]
    assert "Invalid regex" in caplog.text


def test_nested_children_are_flattened():
    rules = rules_from_json(
        [
            {
                "name": "Work",
                "rule": {"type": "none"},
                "children": [{"name": "Email", "rule": {"type": "regex", "regex": "Mail"}}],
            }
        ]
    )
    assert [rule.path for rule in rules] == ["Work", "Work > Email"]
    assert CategoryMatcher(rules).match("Mail", "Inbox") == ["Work > Email"]


def test_rules_from_json_rejects_bad_payloads():
    with pytest.raises(ValueError):
        rules_from_json({"name": "Work"})
    with pytest.raises(ValueError):
        rules_from_json([{"rule": {"type": "regex", "regex": "x"}}])
    with pytest.raises(ValueError):
        rules_from_json(["Work"])


def test_reload_swaps_snapshot_without_touching_old_one():
    store = CategoryStore()
    before = store.matcher
    assert not store.has_categories()

    store.reload(lambda: rules_from_json(SETTINGS))

    assert store.matcher is not before
    assert store.has_categories()
    assert before.match("Code", "main.py") == []
    assert store.matcher.match("Code", "main.py") == ["Work > Coding"]


def test_load_from_env():
    store = CategoryStore()
    store.load_from_env({"AW_CATEGORIES": json.dumps(SETTINGS)})
    assert store.matcher.primary("vim", "notes") == "Work > Coding"

    current = store.matcher
    store.load_from_env({"AW_CATEGORIES": "{not json"})
    assert store.matcher is current
