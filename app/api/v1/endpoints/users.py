# app/api/v1/endpoints/users.py

from fastapi import APIRouter, Depends
from app.schemas.analytics import DashboardStats
from app.schemas.user import User
from app.api import deps
from app.db.repository import SurveyRepository
from app.services.analytics import dashboard_stats

router = APIRouter()

@router.get("/me", response_model=User)
def read_users_me(current_user: User = Depends(deps.get_current_user)):
    return current_user

@router.get("/me/dashboard", response_model=DashboardStats)
def read_dashboard(
    current_user: User = Depends(deps.get_current_user),
    repository: SurveyRepository = Depends(deps.get_repository),
):
    surveys = repository.list_surveys(current_user.id)
    responses = repository.list_responses([s["id"] for s in surveys])
    return dashboard_stats(len(surveys), responses)
