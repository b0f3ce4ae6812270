# app/services/automations.py

import logging
from datetime import datetime, timezone
from html import escape
from typing import Any, Dict, List, Mapping, Optional

from app.services.notifications import EmailService

logger = logging.getLogger(__name__)

TRIGGER_TYPES = ("response_received", "survey_completed", "sentiment_threshold", "time_based")


def default_trigger_conditions(trigger_type: str) -> Dict[str, Any]:
    if trigger_type == "sentiment_threshold":
        return {"threshold": 3.0, "operator": "less_than"}
    if trigger_type == "response_received":
        return {"survey_id": "any"}
    if trigger_type == "survey_completed":
        return {"completion_rate": 100}
    if trigger_type == "time_based":
        return {"schedule": "daily", "time": "09:00"}
    return {}


def default_actions(name: str, email: Optional[str]) -> List[Dict[str, Any]]:
    return [
        {
            "type": "email",
            "config": {
                "to": email or "admin@example.com",
                "subject": f"Automation: {name}",
                "body": "Automation triggered successfully",
            },
        }
    ]


def _number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)


def matches(automation: Mapping[str, Any], survey_id: str, response: Mapping[str, Any]) -> bool:
    """Decide whether a new response fires ``automation``. Time based automations never fire here."""
    conditions = automation.get("trigger_conditions") or {}
    trigger_type = automation.get("trigger_type")

    if trigger_type == "response_received":
        target = conditions.get("survey_id", "any")
        return target in ("any", None) or target == survey_id

    if trigger_type == "survey_completed":
        rate = _number(response.get("completion_rate"))
        required = _number(conditions.get("completion_rate"))
        return rate is not None and rate >= (required if required is not None else 100)

    if trigger_type == "sentiment_threshold":
        score = _number(response.get("sentiment_score"))
        threshold = _number(conditions.get("threshold"))
        if score is None or threshold is None:
            return False
        if conditions.get("operator") == "greater_than":
            return score > threshold
        return score < threshold

    return False


def _execute_actions(automation: Mapping[str, Any], email_service: EmailService) -> Optional[str]:
    for action in automation.get("actions") or []:
        if not isinstance(action, Mapping):
            logger.warning(f"Skipping malformed action on automation {automation.get('id')}: {action!r}")
            continue
        if action.get("type") != "email":
            logger.warning(f"Skipping unsupported automation action: {action.get('type')}")
            continue
        config = action.get("config")
        if not isinstance(config, Mapping):
            config = {}
        recipient = config.get("to")
        if not recipient:
            return "Email action has no recipient"
        sent = email_service.send_email(
            [recipient],
            config.get("subject") or f"Automation: {automation.get('name')}",
            html=f"<p>{escape(str(config.get('body') or ''))}</p>",
        )
        if not sent:
            return f"Failed to send email to {recipient}"
    return None


def run_automations(
    repository,
    automations: List[Mapping[str, Any]],
    survey_id: str,
    response: Mapping[str, Any],
    email_service: EmailService,
) -> int:
    """
    Fire every active automation that matches a freshly stored response and
    write one automation log per run. Returns the number of automations fired.
    """
    fired = 0
    for automation in automations:
        if not automation.get("is_active") or not matches(automation, survey_id, response):
            continue

        fired += 1
        error = _execute_actions(automation, email_service)
        repository.insert_automation_log({
            "automation_id": automation["id"],
            "survey_response_id": response.get("id"),
            "status": "failed" if error else "success",
            "error_message": error,
            "executed_at": datetime.now(timezone.utc).isoformat(),
        })
        if error:
            logger.warning(f"Automation {automation['id']} failed: {error}")
        else:
            logger.info(f"Automation {automation['id']} ran for response {response.get('id')}")
    return fired
