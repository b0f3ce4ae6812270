# app/api/v1/endpoints/responses.py

from fastapi import APIRouter, Depends, Query, Response
from typing import List, Optional
from datetime import date
from app.schemas.response import SurveyResponseWithSurvey
from app.schemas.user import User
from app.api import deps
from app.db.repository import SurveyRepository
from app.services.export import export_filename, export_responses_csv, filter_responses
import logging

logger = logging.getLogger(__name__)

router = APIRouter()

@router.get("/", response_model=List[SurveyResponseWithSurvey])
def get_user_responses(
    search: str = Query(""),
    survey_id: Optional[str] = Query(None),
    current_user: User = Depends(deps.get_current_user),
    repository: SurveyRepository = Depends(deps.get_repository),
):
    rows = repository.list_responses_with_titles(current_user.id)
    return [SurveyResponseWithSurvey(**row) for row in filter_responses(rows, search, survey_id)]

@router.get("/export")
def export_user_responses(
    search: str = Query(""),
    survey_id: Optional[str] = Query(None),
    current_user: User = Depends(deps.get_current_user),
    repository: SurveyRepository = Depends(deps.get_repository),
):
    rows = filter_responses(repository.list_responses_with_titles(current_user.id), search, survey_id)
    logger.info(f"Exporting {len(rows)} responses for user {current_user.id}")
    return Response(
        content=export_responses_csv(rows),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{export_filename(date.today())}"'},
    )
