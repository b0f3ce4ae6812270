# app/schemas/automation.py

from pydantic import BaseModel, Field
from typing import Any, Dict, List, Literal, Optional
from datetime import datetime

TriggerType = Literal["response_received", "survey_completed", "sentiment_threshold", "time_based"]


class AutomationCreate(BaseModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None
    trigger_type: TriggerType = "response_received"


class AutomationToggle(BaseModel):
    is_active: bool


class Automation(BaseModel):
    id: str
    user_id: str
    name: str
    description: Optional[str] = None
    trigger_type: TriggerType
    trigger_conditions: Dict[str, Any] = Field(default_factory=dict)
    actions: List[Dict[str, Any]] = Field(default_factory=list)
    is_active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class AutomationLog(BaseModel):
    id: str
    automation_id: str
    survey_response_id: Optional[str] = None
    status: Literal["success", "failed", "pending"]
    error_message: Optional[str] = None
    executed_at: Optional[datetime] = None
