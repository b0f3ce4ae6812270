# app/api/v1/endpoints/surveys.py

from fastapi import APIRouter, Body, Depends, HTTPException, Query, Response
from typing import Any, Dict, List, Optional
from datetime import datetime, timezone
from pydantic import ValidationError
from postgrest.exceptions import APIError
from app.schemas.survey import (
    PublicSurvey,
    Question,
    QuestionCreate,
    QuestionMove,
    Survey,
    SurveyStatus,
    SurveyStatusUpdate,
    SurveyUpdate,
    SurveyWithStats,
)
from app.schemas.response import SurveyResponse, SurveyResponseCreate
from app.schemas.user import User
from app.api import deps
from app.db.repository import SurveyRepository
from app.services.analytics import survey_stats
from app.services.automations import run_automations
from app.services.notifications import EmailService
from app.services.sentiment_service import SentimentAnalyzer
from app.services.survey_builder import SurveyDocument, completion_rate, load_from_persisted, validate_answer
import logging

logger = logging.getLogger(__name__)

router = APIRouter()

_STATUSES = {s.value for s in SurveyStatus}


def _to_survey(row: Dict[str, Any]) -> Survey:
    return Survey(
        id=row["id"],
        user_id=row["user_id"],
        title=row.get("title") or "",
        description=row.get("description"),
        status=row.get("status") if row.get("status") in _STATUSES else SurveyStatus.DRAFT,
        questions=load_from_persisted(row.get("questions")),
        settings=row.get("settings") or {},
        created_at=row.get("created_at"),
        updated_at=row.get("updated_at"),
    )


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _get_public_row(repository: SurveyRepository, survey_id: str) -> Dict[str, Any]:
    try:
        row = repository.get_survey(survey_id)
    except APIError as e:
        logger.warning(f"Public lookup of survey {survey_id} failed: {e}")
        row = None
    if not row:
        raise HTTPException(status_code=404, detail="Survey not found")
    return row


# Public survey pages, no authentication

@router.get("/public/{survey_id}", response_model=PublicSurvey)
def get_public_survey(survey_id: str, repository: SurveyRepository = Depends(deps.get_repository)):
    row = _get_public_row(repository, survey_id)

    questions = load_from_persisted(row.get("questions"))
    if not questions:
        logger.error(f"Survey {survey_id} has no valid questions")
        raise HTTPException(status_code=404, detail="Survey has no valid questions")

    survey = _to_survey(row)
    return PublicSurvey(id=survey.id, title=survey.title, description=survey.description, status=survey.status, questions=questions)


@router.post("/public/{survey_id}/responses", response_model=SurveyResponse, status_code=201)
def submit_response(
    survey_id: str,
    submission: SurveyResponseCreate,
    repository: SurveyRepository = Depends(deps.get_repository),
    analyzer: SentimentAnalyzer = Depends(deps.get_sentiment),
    email_service: EmailService = Depends(deps.get_email_service),
):
    row = _get_public_row(repository, survey_id)

    questions = load_from_persisted(row.get("questions"))
    by_id = {q.id: q for q in questions}
    for question_id, answer in submission.responses.items():
        question = by_id.get(question_id)
        if question is None:
            raise HTTPException(status_code=422, detail=f"Unknown question_id: {question_id}")
        if not validate_answer(question, answer):
            raise HTTPException(status_code=422, detail=f"Invalid answer for question_id {question_id}")
    missing = [q.id for q in questions if q.required and q.id not in submission.responses]
    if missing:
        raise HTTPException(status_code=422, detail=f"Missing answers for required questions: {', '.join(missing)}")

    response_data = {
        "survey_id": survey_id,
        "respondent_email": submission.respondent_email,
        "respondent_name": submission.respondent_name,
        "responses": submission.responses,
        "sentiment_score": analyzer.score(questions, submission.responses),
        "completion_rate": completion_rate(questions, submission.responses),
        "submitted_at": _now(),
    }
    try:
        created = repository.insert_response(response_data)
    except Exception as e:
        logger.error(f"Error submitting response: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to submit response")

    try:
        automations = repository.list_automations(row["user_id"], active_only=True)
        run_automations(repository, automations, survey_id, created, email_service)
    except Exception as e:
        logger.error(f"Error running automations for survey {survey_id}: {e}", exc_info=True)

    return SurveyResponse(**created)


# Owner endpoints

@router.get("/", response_model=List[SurveyWithStats])
def get_user_surveys(
    search: str = Query(""),
    status: Optional[str] = Query(None),
    current_user: User = Depends(deps.get_current_user),
    repository: SurveyRepository = Depends(deps.get_repository),
):
    rows = repository.list_surveys(current_user.id)
    responses = repository.list_responses([r["id"] for r in rows])

    surveys = []
    for row in rows:
        survey = _to_survey(row)
        if search.lower() not in survey.title.lower():
            continue
        if status and status != "all" and survey.status.value != status:
            continue
        surveys.append(SurveyWithStats(**survey.model_dump(), **survey_stats(survey.id, responses)))
    return surveys


@router.post("/", response_model=Survey, status_code=201)
def create_survey(
    current_user: User = Depends(deps.get_current_user),
    repository: SurveyRepository = Depends(deps.get_repository),
):
    survey_data = {
        "user_id": str(current_user.id),
        "title": "New Survey",
        "description": "Survey description",
        "status": SurveyStatus.DRAFT.value,
        "questions": [],
        "settings": {},
    }
    try:
        created = repository.insert_survey(survey_data)
    except Exception as e:
        logger.error(f"Error creating survey: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to create survey")
    logger.info(f"Survey created: {created['id']}")
    return _to_survey(created)


@router.get("/{survey_id}", response_model=Survey)
def get_survey(
    survey_id: str,
    current_user: User = Depends(deps.get_current_user),
    repository: SurveyRepository = Depends(deps.get_repository),
):
    return _to_survey(deps.get_owned_survey(repository, survey_id, current_user))


@router.put("/{survey_id}", response_model=Survey)
def save_survey(
    survey_id: str,
    survey_update: SurveyUpdate,
    current_user: User = Depends(deps.get_current_user),
    repository: SurveyRepository = Depends(deps.get_repository),
):
    deps.get_owned_survey(repository, survey_id, current_user)

    document = SurveyDocument(survey_update.questions, survey_update.title, survey_update.description or "")
    if not document.save(repository, current_user.id, survey_id):
        raise HTTPException(status_code=500, detail="Failed to save survey")

    return _to_survey(repository.get_survey(survey_id))


@router.patch("/{survey_id}/status", response_model=Survey)
def update_survey_status(
    survey_id: str,
    status_update: SurveyStatusUpdate,
    current_user: User = Depends(deps.get_current_user),
    repository: SurveyRepository = Depends(deps.get_repository),
):
    deps.get_owned_survey(repository, survey_id, current_user)
    updated = repository.update_survey(survey_id, {"status": status_update.status.value, "updated_at": _now()})
    if not updated:
        raise HTTPException(status_code=500, detail="Failed to update survey status")
    logger.info(f"Survey {survey_id} status set to {status_update.status.value}")
    return _to_survey(updated)


@router.post("/{survey_id}/duplicate", response_model=Survey, status_code=201)
def duplicate_survey(
    survey_id: str,
    current_user: User = Depends(deps.get_current_user),
    repository: SurveyRepository = Depends(deps.get_repository),
):
    row = deps.get_owned_survey(repository, survey_id, current_user)
    copy_data = {
        "user_id": str(current_user.id),
        "title": f"{row.get('title') or ''} (Copy)",
        "description": row.get("description"),
        "status": SurveyStatus.DRAFT.value,
        "questions": row.get("questions") or [],
        "settings": {},
    }
    try:
        created = repository.insert_survey(copy_data)
    except Exception as e:
        logger.error(f"Error duplicating survey: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to duplicate survey")
    return _to_survey(created)


@router.delete("/{survey_id}", status_code=204)
def delete_survey(
    survey_id: str,
    current_user: User = Depends(deps.get_current_user),
    repository: SurveyRepository = Depends(deps.get_repository),
):
    deps.get_owned_survey(repository, survey_id, current_user)
    # Responses and distributions cascade in the database
    repository.delete_survey(survey_id)
    logger.info(f"Survey {survey_id} deleted")
    return Response(status_code=204)


# Builder operations on single questions; each one loads, mutates and saves the document.
# Unlike a full save they keep the survey's current status.

def _save_document(document: SurveyDocument, repository: SurveyRepository, current_user: User, row: Dict[str, Any]) -> None:
    status = row.get("status") if row.get("status") in _STATUSES else SurveyStatus.DRAFT.value
    if not document.save(repository, current_user.id, row["id"], status=status):
        raise HTTPException(status_code=500, detail="Failed to save survey")


@router.post("/{survey_id}/questions", response_model=Question, status_code=201)
def add_question(
    survey_id: str,
    question_create: QuestionCreate,
    current_user: User = Depends(deps.get_current_user),
    repository: SurveyRepository = Depends(deps.get_repository),
):
    row = deps.get_owned_survey(repository, survey_id, current_user)
    document = SurveyDocument.from_row(row)
    question = document.add_question(question_create.type)
    _save_document(document, repository, current_user, row)
    return question


@router.patch("/{survey_id}/questions/{question_id}", response_model=Question)
def update_question(
    survey_id: str,
    question_id: str,
    updates: Dict[str, Any] = Body(...),
    current_user: User = Depends(deps.get_current_user),
    repository: SurveyRepository = Depends(deps.get_repository),
):
    row = deps.get_owned_survey(repository, survey_id, current_user)
    document = SurveyDocument.from_row(row)
    if document.get(question_id) is None:
        raise HTTPException(status_code=404, detail="Question not found")

    try:
        question = document.update_question(question_id, updates)
    except ValidationError as ve:
        logger.error(f"Validation error: {ve.errors()}")
        raise HTTPException(status_code=422, detail=ve.errors(include_url=False, include_context=False))
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))

    _save_document(document, repository, current_user, row)
    return question


@router.post("/{survey_id}/questions/{question_id}/move", response_model=List[Question])
def move_question(
    survey_id: str,
    question_id: str,
    question_move: QuestionMove,
    current_user: User = Depends(deps.get_current_user),
    repository: SurveyRepository = Depends(deps.get_repository),
):
    row = deps.get_owned_survey(repository, survey_id, current_user)
    document = SurveyDocument.from_row(row)
    if document.get(question_id) is None:
        raise HTTPException(status_code=404, detail="Question not found")

    document.move_question(question_id, question_move.direction)
    _save_document(document, repository, current_user, row)
    return document.questions


@router.delete("/{survey_id}/questions/{question_id}", status_code=204)
def remove_question(
    survey_id: str,
    question_id: str,
    current_user: User = Depends(deps.get_current_user),
    repository: SurveyRepository = Depends(deps.get_repository),
):
    row = deps.get_owned_survey(repository, survey_id, current_user)
    document = SurveyDocument.from_row(row)
    if document.get(question_id) is None:
        raise HTTPException(status_code=404, detail="Question not found")

    document.remove_question(question_id)
    _save_document(document, repository, current_user, row)
    return Response(status_code=204)
