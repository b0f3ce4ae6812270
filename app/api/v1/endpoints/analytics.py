# app/api/v1/endpoints/analytics.py

from fastapi import APIRouter, Depends, HTTPException, Query
from postgrest.exceptions import APIError
from typing import Literal
from app.schemas.analytics import AnalyticsSummary
from app.schemas.user import User
from app.api import deps
from app.db.repository import SurveyRepository
from app.services.analytics import aggregate, resolve_window
import logging

logger = logging.getLogger(__name__)

router = APIRouter()

@router.get("/", response_model=AnalyticsSummary)
def get_analytics(
    survey_id: str = Query("all"),
    time_range: Literal["7d", "30d", "90d", "1y"] = Query("30d"),
    current_user: User = Depends(deps.get_current_user),
    repository: SurveyRepository = Depends(deps.get_repository),
):
    window = resolve_window(time_range)
    try:
        surveys = repository.list_surveys(
            current_user.id,
            survey_id=None if survey_id == "all" else survey_id,
            order="title",
        )
        responses = repository.list_responses([s["id"] for s in surveys], window.start, window.end)
    except APIError as e:
        logger.error(f"Supabase API error: {str(e)}")
        raise HTTPException(status_code=400, detail="Invalid survey ID format")
    logger.info(f"Aggregating {len(responses)} responses over {len(surveys)} surveys ({time_range})")
    return aggregate(surveys, responses, window)
