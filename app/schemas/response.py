# app/schemas/response.py

from pydantic import BaseModel, EmailStr, Field
from typing import Any, Dict, Optional
from datetime import datetime


class SurveyResponseCreate(BaseModel):
    respondent_email: Optional[EmailStr] = None
    respondent_name: Optional[str] = None
    responses: Dict[str, Any] = Field(default_factory=dict)


class SurveyResponse(BaseModel):
    id: str
    survey_id: str
    respondent_email: Optional[str] = None
    respondent_name: Optional[str] = None
    responses: Dict[str, Any] = Field(default_factory=dict)
    sentiment_score: Optional[float] = None
    completion_rate: Optional[float] = None
    submitted_at: Optional[datetime] = None


class SurveyResponseWithSurvey(SurveyResponse):
    survey_title: str = ""
