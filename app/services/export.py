# app/services/export.py

import csv
import io
import json
from typing import Any, List, Mapping, Optional, Sequence

from app.services.analytics import parse_timestamp

CSV_HEADERS = [
    "Survey",
    "Respondent Email",
    "Respondent Name",
    "Sentiment Score",
    "Completion Rate",
    "Submitted At",
    "Responses",
]


def filter_responses(
    responses: Sequence[Mapping[str, Any]],
    search: str = "",
    survey_id: Optional[str] = None,
) -> List[Mapping[str, Any]]:
    """Case-insensitive search over email, name and survey title, plus an optional survey filter."""
    term = search.lower()
    matches = []
    for response in responses:
        haystack = [response.get("respondent_email"), response.get("respondent_name"), response.get("survey_title")]
        matches_search = not term or any(term in value.lower() for value in haystack if isinstance(value, str))
        matches_survey = not survey_id or survey_id == "all" or response.get("survey_id") == survey_id
        if matches_search and matches_survey:
            matches.append(response)
    return matches


def _format_submitted_at(value: Any) -> str:
    submitted = parse_timestamp(value)
    return submitted.strftime("%Y-%m-%d %H:%M:%S") if submitted else ""


def export_responses_csv(responses: Sequence[Mapping[str, Any]]) -> str:
    if not responses:
        return ""

    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for response in responses:
        writer.writerow([
            response.get("survey_title") or "",
            response.get("respondent_email") or "",
            response.get("respondent_name") or "",
            response.get("sentiment_score") or "",
            response.get("completion_rate") or "",
            _format_submitted_at(response.get("submitted_at")),
            json.dumps(response.get("responses") or {}),
        ])
    return buffer.getvalue()


def export_filename(today) -> str:
    return f"survey-responses-{today.isoformat()}.csv"
