"""Streamlit demo UI for activity-timeline."""

from __future__ import annotations

import asyncio
import json
import tempfile
from typing import Any

from activity_timeline.adapters import json_adapter
from activity_timeline.categories import CategoryStore, rules_from_json
from activity_timeline.config import EngineConfig
from activity_timeline.grouping import GROUP_DIMENSIONS
from activity_timeline.period_summary import DETAIL_LEVELS, PERIOD_TYPES
from activity_timeline.schema import EventStreams
from activity_timeline.service import get_meeting_context, get_unified_activity, summarize_period
from activity_timeline.sources import StaticEventSource
from activity_timeline.timeutils import format_duration

DEMO_EXPORT = "examples/sample_export.json"


def _parse_uploaded(uploaded_file) -> EventStreams:
    with tempfile.NamedTemporaryFile(delete=False, suffix=".json") as handle:
        handle.write(uploaded_file.getbuffer())
        temp_path = handle.name
    return json_adapter.parse(temp_path)


def _stream_counts(streams: EventStreams) -> dict[str, int]:
    return {
        "window": len(streams.window),
        "browser": len(streams.browser),
        "editor": len(streams.editor),
        "afk": len(streams.afk),
        "meetings": len(streams.meetings),
    }


def run_engine(streams: EventStreams, options: dict) -> dict[str, Any]:
    """Run activity, meeting and period views over one set of streams."""

    source = StaticEventSource(streams, afk_filter=options["afk_filter"])
    config = EngineConfig(timezone=options["timezone"], min_duration_seconds=options["min_duration_seconds"])
    matcher = options["matcher"]
    day = options["day"]

    async def gather() -> tuple[dict, dict, dict]:
        activity = await get_unified_activity(
            source,
            "custom",
            day,
            options["next_day"],
            group_by=options["group_by"],
            top_n=options["top_n"],
            matcher=matcher,
            config=config,
        )
        meetings = await get_meeting_context(source, "custom", day, options["next_day"], matcher=matcher, config=config)
        summary = await summarize_period(
            source,
            options["period_type"],
            day,
            detail_level=options["detail_level"],
            matcher=matcher,
            config=config,
        )
        return activity, meetings, summary

    activity, meetings, summary = asyncio.run(gather())
    return {"counts": _stream_counts(streams), "activity": activity, "meetings": meetings, "summary": summary}


def main() -> None:
    import streamlit as st
    from datetime import date, timedelta

    st.set_page_config(page_title="Activity Timeline Demo", layout="wide")
    st.title("Activity Timeline: Streamlit Demo")

    with st.sidebar:
        st.header("Controls")
        uploaded = st.file_uploader("Upload tracker export", type=["json"])
        use_demo = st.checkbox("Load demo export", value=True)
        day = st.date_input("Day", value=date(2025, 1, 6))
        timezone_name = st.text_input("Timezone", value="UTC")
        group_by = st.multiselect("Group by", options=list(GROUP_DIMENSIONS), default=["application"], max_selections=3)
        top_n = st.slider("Top N", min_value=1, max_value=50, value=10)
        min_duration = st.number_input("Min duration (s)", min_value=0.0, max_value=600.0, value=5.0, step=1.0)
        period_type = st.selectbox("Period", options=list(PERIOD_TYPES), index=0)
        detail_level = st.selectbox("Detail level", options=["auto"] + list(DETAIL_LEVELS), index=0)
        afk_filter = st.checkbox("Drop time while away", value=True)
        categories_raw = st.text_area("Category rules (JSON)", value="[]")
        run = st.button("Run engine", type="primary")

    if not run:
        st.info("Configure inputs in the sidebar and click **Run engine**.")
        return

    try:
        if use_demo:
            streams = json_adapter.parse(DEMO_EXPORT)
            data_source = f"demo export ({DEMO_EXPORT})"
        elif uploaded is not None:
            streams = _parse_uploaded(uploaded)
            data_source = f"uploaded file ({uploaded.name})"
        else:
            st.error("Please upload a JSON export or enable 'Load demo export'.")
            return

        store = CategoryStore()
        store.reload(lambda: rules_from_json(json.loads(categories_raw or "[]")))

        options = {
            "day": day.isoformat(),
            "next_day": (day + timedelta(days=1)).isoformat(),
            "timezone": timezone_name or "UTC",
            "group_by": group_by if len(group_by) > 1 else (group_by or ["application"])[0],
            "top_n": int(top_n),
            "min_duration_seconds": float(min_duration),
            "period_type": period_type,
            "detail_level": None if detail_level == "auto" else detail_level,
            "afk_filter": afk_filter,
            "matcher": store.matcher,
        }
        result = run_engine(streams, options)

        st.success(f"Loaded {sum(result['counts'].values())} events from {data_source}.")

        st.subheader("A) Streams")
        st.table([result["counts"]])

        st.subheader("B) Activity")
        activity = result["activity"]
        c1, c2 = st.columns(2)
        c1.metric("Focused time", format_duration(activity["total_time_seconds"]))
        if "calendar_summary" in activity:
            c2.metric("Active time incl. meetings", format_duration(activity["calendar_summary"]["union_seconds"]))
        st.dataframe(
            [
                {key: row[key] for key in ("title", "app", "duration_hours", "percentage", "event_count")}
                for row in activity["activities"]
            ]
        )

        st.subheader("C) Meetings")
        for entry in result["meetings"]["meetings"]:
            meeting = entry["meeting"]
            st.write(
                f"**{meeting['summary']}**: {format_duration(entry['overlap_seconds'])} focused, "
                f"{format_duration(entry['meeting_only_seconds'])} meeting-only"
            )
            if entry["focus"]:
                st.table([{key: item[key] for key in ("app", "duration_seconds", "percentage")} for item in entry["focus"]])

        st.subheader("D) Period summary")
        summary = result["summary"]
        s1, s2, s3, s4 = st.columns(4)
        s1.metric("Active (h)", summary["total_active_time_hours"])
        s2.metric("Focus (h)", summary["focus_time_hours"])
        s3.metric("Meetings (h)", summary["meeting_time_hours"])
        s4.metric("AFK (h)", summary["total_afk_time_hours"])
        for key in ("hourly_breakdown", "daily_breakdown", "weekly_breakdown"):
            if key in summary:
                st.bar_chart({row.get("date") or row.get("week_start") or f"{row['hour']:02d}": row["active_seconds"] for row in summary[key]})
        for insight in summary["insights"]:
            st.write(f"- {insight}")

    except ValueError as exc:
        st.error(f"Input error: {exc}")


if __name__ == "__main__":
    main()
