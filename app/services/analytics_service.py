# app/services/analytics_service.py
"""
Dashboard numbers for a doctor's profile.

Per-day counters come from the `analytics_daily_stats` rollup table; only the
referrer breakdown reads raw `analytics_events`. The selected period is
compared with the period of the same length right before it.
"""
import math
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional
from urllib.parse import urlparse

from loguru import logger
from supabase import Client

DAILY_STATS_TABLE = "analytics_daily_stats"
EVENTS_TABLE = "analytics_events"

TOP_REFERRERS = 10
DIRECT_REFERRER = "direct"

# rollup column -> totals key
TOTAL_COLUMNS = {
    "total_views": "totalViews",
    "unique_views": "uniqueViews",
    "verified_doctor_views": "verifiedDoctorViews",
    "click_save_contact": "clickSaveContact",
    "click_book_appointment": "clickBookAppointment",
    "click_send_inquiry": "clickSendInquiry",
    "click_recommend": "clickRecommend",
    "inquiries_received": "inquiriesReceived",
    "recommendations_received": "recommendationsReceived",
    "mobile_views": "mobileViews",
    "tablet_views": "tabletViews",
    "desktop_views": "desktopViews",
}

COMPARED_COLUMNS = ("total_views", "unique_views", "verified_doctor_views")

ACTION_COLUMNS = ("click_save_contact", "click_book_appointment", "click_send_inquiry", "click_recommend")


def sum_columns(rows: Iterable[Dict[str, Any]], columns: Iterable[str]) -> Dict[str, int]:
    """Column totals; missing and null cells count as 0."""
    columns = list(columns)
    totals = {column: 0 for column in columns}
    for row in rows:
        for column in columns:
            totals[column] += row.get(column) or 0
    return totals


def percent_change(current: int, previous: int) -> int:
    if previous == 0:
        return 100 if current > 0 else 0
    # Half-up, not banker's rounding
    return math.floor((current - previous) / previous * 100 + 0.5)


def referrer_domain(referrer: Optional[str]) -> str:
    if not referrer:
        return DIRECT_REFERRER
    if referrer.startswith("http"):
        host = urlparse(referrer).hostname
        if host:
            return host
    return referrer


def top_referrers(referrers: Iterable[Optional[str]], limit: int = TOP_REFERRERS) -> List[Dict[str, Any]]:
    counts: Dict[str, int] = {}
    for referrer in referrers:
        domain = referrer_domain(referrer)
        counts[domain] = counts.get(domain, 0) + 1

    # Stable sort: equal counts keep first-seen order
    ranked = sorted(counts.items(), key=lambda item: item[1], reverse=True)
    return [{"referrer": domain, "count": count} for domain, count in ranked[:limit]]


def _fetch_daily_stats(supabase: Client, profile_id: str, start: date) -> List[Dict[str, Any]]:
    try:
        response = supabase.table(DAILY_STATS_TABLE).select("*").eq(
            "profile_id", profile_id
        ).gte(
            "date", start.isoformat()
        ).order("date").execute()
        return response.data or []
    except Exception as e:
        logger.error(f"Error fetching daily stats ({profile_id}): {e}")
        return []


def _fetch_previous_stats(supabase: Client, profile_id: str, start: date, end: date) -> List[Dict[str, Any]]:
    try:
        response = supabase.table(DAILY_STATS_TABLE).select(",".join(COMPARED_COLUMNS)).eq(
            "profile_id", profile_id
        ).gte(
            "date", start.isoformat()
        ).lt(
            "date", end.isoformat()
        ).execute()
        return response.data or []
    except Exception as e:
        logger.warning(f"Error fetching previous period stats ({profile_id}): {e}")
        return []


def _fetch_view_referrers(supabase: Client, profile_id: str, since: datetime) -> List[Optional[str]]:
    try:
        response = supabase.table(EVENTS_TABLE).select("referrer").eq(
            "profile_id", profile_id
        ).eq(
            "event_type", "profile_view"
        ).gte(
            "created_at", since.isoformat()
        ).execute()
    except Exception as e:
        logger.warning(f"Error fetching referrers ({profile_id}): {e}")
        return []
    # Views with no referrer are left out of the breakdown
    return [row.get("referrer") for row in response.data or [] if row.get("referrer")]


def build_dashboard(supabase: Client, profile_id: str, days: int, today: Optional[date] = None) -> Dict[str, Any]:
    """
    Totals, period-over-period change, per-day series, device and action
    breakdowns and top referrers for the last `days` days.

    Each query degrades to "no data" on error so one failing table does not
    blank the whole dashboard.
    """
    today = today or datetime.now(timezone.utc).date()
    start = today - timedelta(days=days)
    previous_start = start - timedelta(days=days)

    daily = _fetch_daily_stats(supabase, profile_id, start)
    previous = _fetch_previous_stats(supabase, profile_id, previous_start, start)
    referrers = _fetch_view_referrers(
        supabase, profile_id, datetime.combine(start, time.min, tzinfo=timezone.utc)
    )

    sums = sum_columns(daily, TOTAL_COLUMNS)
    previous_sums = sum_columns(previous, COMPARED_COLUMNS)
    totals = {key: sums[column] for column, key in TOTAL_COLUMNS.items()}

    return {
        "profileId": profile_id,
        "dateRange": {"start": start.isoformat(), "end": today.isoformat(), "days": days},
        "totals": totals,
        "changes": {
            TOTAL_COLUMNS[column]: percent_change(sums[column], previous_sums[column])
            for column in COMPARED_COLUMNS
        },
        "dailyStats": [
            {
                "date": day.get("date"),
                "views": day.get("total_views") or 0,
                "uniqueViews": day.get("unique_views") or 0,
                "verifiedDoctorViews": day.get("verified_doctor_views") or 0,
                "actions": sum(day.get(column) or 0 for column in ACTION_COLUMNS),
            }
            for day in daily
        ],
        "deviceBreakdown": {
            "mobile": totals["mobileViews"],
            "tablet": totals["tabletViews"],
            "desktop": totals["desktopViews"],
        },
        "actionsBreakdown": {
            "saveContact": totals["clickSaveContact"],
            "bookAppointment": totals["clickBookAppointment"],
            "sendInquiry": totals["clickSendInquiry"],
            "recommend": totals["clickRecommend"],
        },
        "topReferrers": top_referrers(referrers),
    }
