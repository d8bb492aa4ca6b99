import calendar
from datetime import date
from typing import Any, Dict, List, Mapping, Optional

import boto3

from party_utils.config import load_storage_config
from party_utils.http import json_response, query_params
from party_utils.logger import get_logger
from party_utils.store import EventSettingsStore
from party_utils.validation import get_variant

logger = get_logger("events")

DEFAULT_COHORT_MAX = 24

WEEKDAY_LABELS = "월화수목금토일"

_settings_store: Optional[EventSettingsStore] = None


def _get_settings_store() -> EventSettingsStore:
    global _settings_store
    if _settings_store is None:
        conf = load_storage_config()
        dynamodb = boto3.resource("dynamodb", region_name=conf.region)
        _settings_store = EventSettingsStore(dynamodb.Table(conf.event_settings_table))
    return _settings_store


def _percent(count: int, maximum: int) -> float:
    if maximum <= 0:
        return 0.0
    return round(min(count / maximum * 100, 100.0), 1)


def _count(value: Any, default: int) -> int:
    # Missing or non-numeric cells render as the default.
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def capacity(row: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """Gauge numbers for one event date; dates without a row show 0/24 each."""
    row = row or {}
    male_count = _count(row.get("male_count"), 0)
    female_count = _count(row.get("female_count"), 0)
    male_max = _count(row.get("male_max"), DEFAULT_COHORT_MAX)
    female_max = _count(row.get("female_max"), DEFAULT_COHORT_MAX)

    is_full = male_count >= male_max and female_count >= female_max
    return {
        "male_count": male_count,
        "female_count": female_count,
        "male_max": male_max,
        "female_max": female_max,
        "total_current": male_count + female_count,
        "total_max": male_max + female_max,
        "male_percent": _percent(male_count, male_max),
        "female_percent": _percent(female_count, female_max),
        "is_full": is_full,
        "badge": "closed" if is_full else "open",
    }


def date_labels(event_date: str) -> Dict[str, str]:
    # 2026-03-14 -> "3.14(토)", "3월 14일"
    d = date.fromisoformat(event_date)
    return {
        "date": f"{d.month}.{d.day}({WEEKDAY_LABELS[d.weekday()]})",
        "label": f"{d.month}월 {d.day}일",
    }


def calendar_days(year: int, month: int, event_days: List[int]) -> List[Optional[Dict[str, Any]]]:
    """Sunday-first month grid; leading blanks are None."""
    first_weekday, days_in_month = calendar.monthrange(year, month)
    leading = (first_weekday + 1) % 7

    days: List[Optional[Dict[str, Any]]] = [None] * leading
    for day in range(1, days_in_month + 1):
        column = (leading + day - 1) % 7
        days.append(
            {
                "day": day,
                "sunday": column == 0,
                "saturday": column == 6,
                "has_event": day in event_days,
            }
        )
    return days


def _month_from_query(params: Mapping[str, str]):
    if "year" not in params and "month" not in params:
        return None
    today = date.today()
    year = int(params.get("year", today.year))
    month = int(params.get("month", today.month))
    if not 1 <= month <= 12:
        raise ValueError(f"month out of range: {month}")
    if not 1 <= year <= 9999:
        raise ValueError(f"year out of range: {year}")
    return year, month


def lambda_handler(event, context):
    try:
        month = _month_from_query(query_params(event))
    except ValueError as e:
        return json_response(400, {"error": "invalid_month", "detail": str(e)}, cors=True)

    try:
        variant = get_variant()
        store = _get_settings_store()
    except RuntimeError as e:
        logger.error("events.env_error", extra={"error": str(e)})
        return json_response(500, {"error": "server_misconfigured"}, cors=True)

    try:
        settings = store.all()
    except Exception as e:
        # Gauges fall back to empty counts rather than hiding the schedule.
        logger.exception("events.settings_unavailable", extra={"error": str(e)})
        settings = {}

    events = []
    event_dates = []
    for event_date in list(variant.event_dates) or sorted(settings, key=str):
        try:
            labels = date_labels(event_date)
        except (TypeError, ValueError):
            logger.warning("events.bad_event_date", extra={"event_date": str(event_date)})
            continue
        event_dates.append(event_date)
        events.append({"key": event_date, **labels, **capacity(settings.get(event_date))})

    body: Dict[str, Any] = {"events": events}

    if month:
        year, month_number = month
        prefix = f"{year:04d}-{month_number:02d}-"
        event_days = [int(d[len(prefix):]) for d in event_dates if d.startswith(prefix)]
        body["calendar"] = {
            "year": year,
            "month": month_number,
            "days": calendar_days(year, month_number, event_days),
        }

    return json_response(200, body, cors=True)
