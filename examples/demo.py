"""Demo script for activity-timeline."""

import asyncio
import json
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from activity_timeline.adapters.json_adapter import parse
from activity_timeline.categories import CategoryStore, rules_from_json
from activity_timeline.config import EngineConfig
from activity_timeline.service import get_meeting_context, get_unified_activity, summarize_period
from activity_timeline.sources import StaticEventSource

CATEGORIES = [
    {"name": ["Work", "Coding"], "rule": {"type": "regex", "regex": "Code|Terminal"}},
    {"name": ["Work", "Review"], "rule": {"type": "regex", "regex": "Pull request|github", "ignore_case": True}},
    {"name": ["Communication"], "rule": {"type": "regex", "regex": "Slack|Zoom"}},
]


async def run() -> None:
    source = StaticEventSource(parse("examples/sample_export.json"))
    store = CategoryStore()
    store.reload(lambda: rules_from_json(CATEGORIES))
    config = EngineConfig(timezone="CET")

    activity = await get_unified_activity(
        source,
        "custom",
        "2025-01-06",
        "2025-01-07",
        group_by=["category_top_level", "application"],
        matcher=store.matcher,
        config=config,
    )
    meetings = await get_meeting_context(source, "custom", "2025-01-06", "2025-01-07", config=config)
    summary = await summarize_period(source, "daily", "2025-01-06", matcher=store.matcher, config=config)

    print("Activity:", json.dumps(activity["activities"], indent=2))
    print("Meetings:", json.dumps(meetings["summary"], indent=2))
    print("Insights:", json.dumps(summary["insights"], indent=2))


def main() -> None:
    asyncio.run(run())


if __name__ == "__main__":
    main()
