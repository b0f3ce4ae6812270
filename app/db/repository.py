# app/db/repository.py

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional
from supabase import Client

logger = logging.getLogger(__name__)


class SurveyRepository:
    """
    Table access for surveys, responses, distributions and automations.

    Every method returns plain row dictionaries as Supabase hands them back;
    shaping rows into schemas is left to the callers.
    """

    def __init__(self, client: Client):
        self.client = client

    # Surveys

    def list_surveys(self, user_id: str, survey_id: Optional[str] = None, order: str = "updated_at") -> List[Dict[str, Any]]:
        query = self.client.table("surveys").select("*").eq("user_id", user_id)
        if survey_id:
            query = query.eq("id", survey_id)
        response = query.order(order, desc=order != "title").execute()
        return response.data or []

    def get_survey(self, survey_id: str) -> Optional[Dict[str, Any]]:
        response = self.client.table("surveys").select("*").eq("id", survey_id).limit(1).execute()
        return response.data[0] if response.data else None

    def insert_survey(self, survey_data: Dict[str, Any]) -> Dict[str, Any]:
        response = self.client.table("surveys").insert(survey_data).execute()
        if not response.data:
            raise RuntimeError("Supabase returned no rows for survey insert")
        return response.data[0]

    def update_survey(self, survey_id: str, survey_data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        response = self.client.table("surveys").update(survey_data).eq("id", survey_id).execute()
        return response.data[0] if response.data else None

    def delete_survey(self, survey_id: str) -> None:
        self.client.table("surveys").delete().eq("id", survey_id).execute()

    # Responses

    def list_responses(
        self,
        survey_ids: List[str],
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> List[Dict[str, Any]]:
        if not survey_ids:
            return []
        query = self.client.table("survey_responses").select("*").in_("survey_id", survey_ids)
        if start is not None:
            query = query.gte("submitted_at", start.isoformat())
        if end is not None:
            query = query.lte("submitted_at", end.isoformat())
        return query.execute().data or []

    def list_responses_with_titles(self, user_id: str) -> List[Dict[str, Any]]:
        response = (
            self.client.table("survey_responses")
            .select("*, surveys!inner(title, user_id)")
            .eq("surveys.user_id", user_id)
            .order("submitted_at", desc=True)
            .execute()
        )
        rows = response.data or []
        for row in rows:
            survey = row.pop("surveys", None) or {}
            row["survey_title"] = survey.get("title", "")
        return rows

    def insert_response(self, response_data: Dict[str, Any]) -> Dict[str, Any]:
        response = self.client.table("survey_responses").insert(response_data).execute()
        if not response.data:
            raise RuntimeError("Supabase returned no rows for response insert")
        return response.data[0]

    # Distributions

    def insert_distribution(self, distribution_data: Dict[str, Any]) -> Dict[str, Any]:
        response = self.client.table("survey_distributions").insert(distribution_data).execute()
        return response.data[0] if response.data else {}

    def update_distribution(self, distribution_id: str, distribution_data: Dict[str, Any]) -> None:
        self.client.table("survey_distributions").update(distribution_data).eq("id", distribution_id).execute()

    # Automations

    def list_automations(self, user_id: str, active_only: bool = False) -> List[Dict[str, Any]]:
        query = self.client.table("automations").select("*").eq("user_id", user_id)
        if active_only:
            query = query.eq("is_active", True)
        return query.order("created_at", desc=True).execute().data or []

    def get_automation(self, automation_id: str) -> Optional[Dict[str, Any]]:
        response = self.client.table("automations").select("*").eq("id", automation_id).limit(1).execute()
        return response.data[0] if response.data else None

    def insert_automation(self, automation_data: Dict[str, Any]) -> Dict[str, Any]:
        response = self.client.table("automations").insert(automation_data).execute()
        if not response.data:
            raise RuntimeError("Supabase returned no rows for automation insert")
        return response.data[0]

    def update_automation(self, automation_id: str, automation_data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        response = self.client.table("automations").update(automation_data).eq("id", automation_id).execute()
        return response.data[0] if response.data else None

    def delete_automation(self, automation_id: str) -> None:
        self.client.table("automations").delete().eq("id", automation_id).execute()

    def list_automation_logs(self, automation_ids: List[str], limit: int = 50) -> List[Dict[str, Any]]:
        if not automation_ids:
            return []
        response = (
            self.client.table("automation_logs")
            .select("*")
            .in_("automation_id", automation_ids)
            .order("executed_at", desc=True)
            .limit(limit)
            .execute()
        )
        return response.data or []

    def insert_automation_log(self, log_data: Dict[str, Any]) -> None:
        try:
            self.client.table("automation_logs").insert(log_data).execute()
        except Exception as e:
            logger.warning(f"Failed to write automation log: {e}")
