# app/api/v1/endpoints/automations.py

from fastapi import APIRouter, Depends, HTTPException, Response
from typing import List
from datetime import datetime, timezone
from app.schemas.automation import Automation, AutomationCreate, AutomationLog, AutomationToggle
from app.schemas.user import User
from app.api import deps
from app.db.repository import SurveyRepository
from app.services.automations import default_actions, default_trigger_conditions
import logging

logger = logging.getLogger(__name__)

router = APIRouter()

def _now() -> str:
    return datetime.now(timezone.utc).isoformat()

def _get_owned_automation(repository: SurveyRepository, automation_id: str, current_user: User) -> dict:
    automation = repository.get_automation(automation_id)
    if not automation or automation.get("user_id") != str(current_user.id):
        raise HTTPException(status_code=404, detail="Automation not found or not authorized")
    return automation

@router.get("/", response_model=List[Automation])
def get_user_automations(
    current_user: User = Depends(deps.get_current_user),
    repository: SurveyRepository = Depends(deps.get_repository),
):
    return [Automation(**a) for a in repository.list_automations(current_user.id)]

@router.get("/logs", response_model=List[AutomationLog])
def get_automation_logs(
    current_user: User = Depends(deps.get_current_user),
    repository: SurveyRepository = Depends(deps.get_repository),
):
    automation_ids = [a["id"] for a in repository.list_automations(current_user.id)]
    return [AutomationLog(**log) for log in repository.list_automation_logs(automation_ids)]

@router.post("/", response_model=Automation, status_code=201)
def create_automation(
    automation_create: AutomationCreate,
    current_user: User = Depends(deps.get_current_user),
    repository: SurveyRepository = Depends(deps.get_repository),
):
    name = automation_create.name.strip()
    if not name:
        raise HTTPException(status_code=400, detail="Please enter a name for the automation")

    automation_data = {
        "user_id": str(current_user.id),
        "name": name,
        "description": (automation_create.description or "").strip() or None,
        "trigger_type": automation_create.trigger_type,
        "trigger_conditions": default_trigger_conditions(automation_create.trigger_type),
        "actions": default_actions(name, current_user.email),
        "is_active": True,
        "created_at": _now(),
        "updated_at": _now(),
    }
    try:
        created = repository.insert_automation(automation_data)
    except Exception as e:
        logger.error(f"Error creating automation: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to create automation")

    repository.insert_automation_log({"automation_id": created["id"], "status": "success", "executed_at": _now()})
    logger.info(f"Automation created: {created['id']} ({automation_create.trigger_type})")
    return Automation(**created)

@router.patch("/{automation_id}", response_model=Automation)
def toggle_automation(
    automation_id: str,
    toggle: AutomationToggle,
    current_user: User = Depends(deps.get_current_user),
    repository: SurveyRepository = Depends(deps.get_repository),
):
    _get_owned_automation(repository, automation_id, current_user)
    updated = repository.update_automation(automation_id, {"is_active": toggle.is_active, "updated_at": _now()})
    if not updated:
        repository.insert_automation_log({
            "automation_id": automation_id,
            "status": "failed",
            "error_message": "Failed to toggle automation",
            "executed_at": _now(),
        })
        raise HTTPException(status_code=500, detail="Failed to toggle automation")

    repository.insert_automation_log({"automation_id": automation_id, "status": "success", "executed_at": _now()})
    return Automation(**updated)

@router.delete("/{automation_id}", status_code=204)
def delete_automation(
    automation_id: str,
    current_user: User = Depends(deps.get_current_user),
    repository: SurveyRepository = Depends(deps.get_repository),
):
    _get_owned_automation(repository, automation_id, current_user)
    repository.delete_automation(automation_id)
    logger.info(f"Automation {automation_id} deleted")
    return Response(status_code=204)
