"""Print a period summary for a tracker JSON export."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from activity_timeline.adapters import json_adapter
from activity_timeline.categories import CategoryStore
from activity_timeline.config import load_config
from activity_timeline.period_summary import DETAIL_LEVELS, PERIOD_TYPES
from activity_timeline.service import summarize_period
from activity_timeline.sources import StaticEventSource


def main() -> None:
    parser = argparse.ArgumentParser(description="Summarise an activity export for a day, week or month")
    parser.add_argument("--data", required=True, help="Path to a JSON export")
    parser.add_argument("--period", default="daily", choices=PERIOD_TYPES)
    parser.add_argument("--date", default=None, help="Day inside the period, YYYY-MM-DD (default: today)")
    parser.add_argument("--timezone", default=None, help="IANA name, abbreviation or UTC offset")
    parser.add_argument("--detail", default=None, choices=DETAIL_LEVELS)
    parser.add_argument("--no-afk-filter", action="store_true", help="Keep activity recorded while away")
    parser.add_argument("--verbose", action="store_true")
    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    streams = json_adapter.parse(args.data)
    store = CategoryStore()
    store.load_from_env()

    summary = asyncio.run(
        summarize_period(
            StaticEventSource(streams, afk_filter=not args.no_afk_filter),
            args.period,
            args.date,
            timezone_name=args.timezone,
            detail_level=args.detail,
            matcher=store.matcher,
            config=load_config(),
        )
    )

    print(json.dumps(summary, indent=2))

    outputs_dir = Path("outputs")
    outputs_dir.mkdir(parents=True, exist_ok=True)
    out_path = outputs_dir / f"summary_{args.period}.json"
    out_path.write_text(json.dumps(summary, indent=2), encoding="utf-8")
    print(f"Saved period summary to {out_path}")


if __name__ == "__main__":
    main()
