# app/services/analytics.py

"""
Client-side style aggregation over already fetched survey and response rows.

Rows are the plain dictionaries returned by Supabase. Nothing in this module
performs I/O or raises on malformed data: a field that is missing, null,
zero or not a number is simply not counted.
"""

import math
from datetime import date, datetime, time, timedelta
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from app.schemas.analytics import (
    AnalyticsSummary,
    ChannelCount,
    DashboardStats,
    DateWindow,
    SentimentBucket,
    SurveyPerformance,
    TrendBucket,
)

WEEKDAY_LABELS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")

# (label, lower bound, color), checked top to bottom; the last bucket takes the rest
SENTIMENT_BUCKETS = (
    ("Very Positive", 4.5, "#39FF14"),
    ("Positive", 3.5, "#1E90FF"),
    ("Neutral", 2.5, "#2F4F4F"),
    ("Negative", 1.5, "#FF6347"),
    ("Very Negative", None, "#DC143C"),
)

# Illustrative split until distribution channels are tracked per response
CHANNEL_SHARES = (
    ("Email", 0.4),
    ("Direct Link", 0.3),
    ("Social Media", 0.2),
    ("QR Code", 0.1),
)

TOP_SURVEYS_LIMIT = 5
TREND_DAYS = 7

TIME_RANGE_DAYS = {"7d": 7, "30d": 30, "90d": 90}


def _truthy_number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if not value or math.isnan(value):
        return None
    return float(value)


def _truthy_values(rows: Iterable[Mapping[str, Any]], field: str) -> List[float]:
    values = []
    for row in rows:
        value = _truthy_number(row.get(field))
        if value is not None:
            values.append(value)
    return values


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values) if values else 0


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse a Supabase timestamp into an aware datetime in local time."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value:
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None
    return parsed.astimezone()


def response_trend(responses: Sequence[Mapping[str, Any]], today: Optional[date] = None) -> List[TrendBucket]:
    today = today or date.today()
    submitted = [parse_timestamp(r.get("submitted_at")) for r in responses]
    buckets = []
    for offset in range(TREND_DAYS - 1, -1, -1):
        day = today - timedelta(days=offset)
        day_start = datetime.combine(day, time.min).astimezone()
        next_day = datetime.combine(day + timedelta(days=1), time.min).astimezone()
        count = sum(1 for ts in submitted if ts is not None and day_start <= ts < next_day)
        buckets.append(TrendBucket(date=WEEKDAY_LABELS[day.weekday()], count=count))
    return buckets


def sentiment_distribution(scores: Sequence[float]) -> List[SentimentBucket]:
    counts = [0] * len(SENTIMENT_BUCKETS)
    for score in scores:
        for index, (_, lower, _) in enumerate(SENTIMENT_BUCKETS):
            if lower is None or score >= lower:
                counts[index] += 1
                break

    total = len(scores)
    return [
        SentimentBucket(
            label=label,
            value=_round_half_up(count / total * 100) if total else 0,
            color=color,
        )
        for (label, _, color), count in zip(SENTIMENT_BUCKETS, counts)
    ]


def top_performing_surveys(
    surveys: Sequence[Mapping[str, Any]],
    responses: Sequence[Mapping[str, Any]],
    limit: int = TOP_SURVEYS_LIMIT,
) -> List[SurveyPerformance]:
    stats = []
    for survey in surveys:
        survey_responses = [r for r in responses if r.get("survey_id") == survey.get("id")]
        stats.append(
            SurveyPerformance(
                title=survey.get("title") or "",
                responses=len(survey_responses),
                sentiment=_mean(_truthy_values(survey_responses, "sentiment_score")),
            )
        )
    # sorted() is stable, ties keep input order
    return sorted(stats, key=lambda s: s.responses, reverse=True)[:limit]


def responses_by_channel(total_responses: int) -> List[ChannelCount]:
    return [ChannelCount(channel=channel, count=math.floor(total_responses * share)) for channel, share in CHANNEL_SHARES]


def aggregate(
    surveys: Sequence[Mapping[str, Any]],
    responses: Sequence[Mapping[str, Any]],
    window: Optional[DateWindow] = None,
    today: Optional[date] = None,
) -> AnalyticsSummary:
    """
    Build the analytics view for a set of surveys and their responses.

    Args:
        surveys: Survey rows; only ``id`` and ``title`` are read.
        responses: Response rows, already filtered by the caller to the
            survey set and to ``window``.
        window: The date range the caller filtered by. The seven day trend
            ignores it and always ends on ``today``.
        today: Anchor day for the trend, defaults to the local date.

    Returns:
        AnalyticsSummary: Never ``None``; empty input gives zeros.
    """
    sentiment_scores = _truthy_values(responses, "sentiment_score")
    completion_rates = _truthy_values(responses, "completion_rate")
    total_responses = len(responses)

    return AnalyticsSummary(
        total_surveys=len(surveys),
        total_responses=total_responses,
        average_sentiment=_mean(sentiment_scores),
        completion_rate=_mean(completion_rates),
        response_trend=response_trend(responses, today),
        sentiment_distribution=sentiment_distribution(sentiment_scores),
        top_performing_surveys=top_performing_surveys(surveys, responses),
        responses_by_channel=responses_by_channel(total_responses),
    )


def resolve_window(time_range: str, now: Optional[datetime] = None) -> DateWindow:
    end = now or datetime.now().astimezone()
    if time_range in TIME_RANGE_DAYS:
        start = end - timedelta(days=TIME_RANGE_DAYS[time_range])
    elif time_range == "1y":
        try:
            start = end.replace(year=end.year - 1)
        except ValueError:
            # Feb 29
            start = end.replace(year=end.year - 1, day=28)
    else:
        start = end
    return DateWindow(start=start, end=end)


def dashboard_stats(total_surveys: int, responses: Sequence[Mapping[str, Any]]) -> DashboardStats:
    total_responses = len(responses)
    completion_rate = 0
    if total_responses > 0 and total_surveys > 0:
        # Rough engagement figure: ten responses per survey counts as 100%
        completion_rate = _round_half_up(total_responses / (total_surveys * 10) * 100)
    return DashboardStats(
        total_surveys=total_surveys,
        total_responses=total_responses,
        avg_sentiment=_mean(_truthy_values(responses, "sentiment_score")),
        completion_rate=completion_rate,
    )


def survey_stats(survey_id: str, responses: Sequence[Mapping[str, Any]]) -> Dict[str, int]:
    survey_responses = [r for r in responses if r.get("survey_id") == survey_id]
    count = len(survey_responses)
    total = sum(_truthy_number(r.get("completion_rate")) or 0 for r in survey_responses)
    return {
        "response_count": count,
        "completion_rate": _round_half_up(total / count) if count else 0,
    }
