# app/schemas/survey.py

from enum import Enum
from pydantic import BaseModel, Field, field_validator
from typing import Annotated, Any, Dict, List, Literal, Optional, Union
from datetime import datetime


class SurveyStatus(str, Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    COMPLETED = "completed"
    PAUSED = "paused"


class QuestionBase(BaseModel):
    id: str = Field(min_length=1)
    title: str = Field(min_length=1)
    description: str = ""
    required: bool = False


class MultipleChoiceQuestion(QuestionBase):
    type: Literal["multiple-choice"] = "multiple-choice"
    options: List[str] = Field(default_factory=list)


class LikertQuestion(QuestionBase):
    type: Literal["likert"] = "likert"
    scale: int = 5


class OpenEndedQuestion(QuestionBase):
    type: Literal["open-ended"] = "open-ended"


class YesNoQuestion(QuestionBase):
    type: Literal["yes-no"] = "yes-no"


class RatingQuestion(QuestionBase):
    type: Literal["rating"] = "rating"


Question = Annotated[
    Union[MultipleChoiceQuestion, LikertQuestion, OpenEndedQuestion, YesNoQuestion, RatingQuestion],
    Field(discriminator="type"),
]

QUESTION_MODELS = {
    "multiple-choice": MultipleChoiceQuestion,
    "likert": LikertQuestion,
    "open-ended": OpenEndedQuestion,
    "yes-no": YesNoQuestion,
    "rating": RatingQuestion,
}

QuestionType = Literal["multiple-choice", "likert", "open-ended", "yes-no", "rating"]


class SurveyBase(BaseModel):
    title: str
    description: Optional[str] = None


class SurveyUpdate(SurveyBase):
    questions: List[Question] = Field(default_factory=list)

    @field_validator("questions")
    @classmethod
    def question_ids_unique(cls, questions):
        seen = set()
        for question in questions:
            if question.id in seen:
                raise ValueError(f"Duplicate question id: {question.id}")
            seen.add(question.id)
        return questions


class SurveyStatusUpdate(BaseModel):
    status: SurveyStatus


class Survey(SurveyBase):
    id: str
    user_id: str
    status: SurveyStatus = SurveyStatus.DRAFT
    questions: List[Question] = Field(default_factory=list)
    settings: Dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class SurveyWithStats(Survey):
    response_count: int = 0
    completion_rate: int = 0


class PublicSurvey(SurveyBase):
    id: str
    status: SurveyStatus
    questions: List[Question]


class QuestionCreate(BaseModel):
    type: QuestionType


class QuestionMove(BaseModel):
    direction: Literal["up", "down"]
