# app/services/survey_builder.py

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

from pydantic import TypeAdapter, ValidationError

from app.schemas.survey import (
    LikertQuestion,
    MultipleChoiceQuestion,
    OpenEndedQuestion,
    Question,
    QUESTION_MODELS,
    RatingQuestion,
    YesNoQuestion,
)
from app.services.link_generator import generate_question_id

logger = logging.getLogger(__name__)

_question_adapter = TypeAdapter(Question)

DEFAULT_TITLE = "Untitled Question"
DEFAULT_SCALE = 5
RATING_STARS = 5


def load_from_persisted(raw: Any) -> List[Question]:
    """
    Turn the untyped ``questions`` JSON of a survey row into Question models.

    Entries that are not objects, lack an id, type or title, or repeat an
    earlier id are dropped.
    Missing optional fields get the defaults of their question type and an
    unknown type is read as open-ended. This function never raises.

    Args:
        raw: Whatever is stored in the ``questions`` column.

    Returns:
        List[Question]: The valid questions in stored order.
    """
    if not isinstance(raw, list):
        return []

    questions = []
    seen = set()
    for entry in raw:
        if not isinstance(entry, Mapping):
            continue
        if not (entry.get("id") and entry.get("type") and entry.get("title")):
            continue

        question_type = entry.get("type")
        if question_type not in QUESTION_MODELS:
            logger.warning(f"Unknown question type {question_type!r}, loading as open-ended")
            question_type = "open-ended"

        options = entry.get("options")
        scale = entry.get("scale")
        fields = {
            "id": str(entry.get("id")) or generate_question_id(),
            "type": question_type,
            "title": str(entry.get("title")) or DEFAULT_TITLE,
            "description": entry.get("description") if isinstance(entry.get("description"), str) else "",
            "required": bool(entry.get("required")),
            "options": [str(o) for o in options] if isinstance(options, list) else [],
            "scale": scale if isinstance(scale, int) and not isinstance(scale, bool) else DEFAULT_SCALE,
        }
        if fields["id"] in seen:
            logger.warning(f"Skipping question with duplicate id {fields['id']}")
            continue
        model = QUESTION_MODELS[question_type]
        try:
            questions.append(model.model_validate({k: v for k, v in fields.items() if k in model.model_fields}))
        except ValidationError as e:
            logger.warning(f"Skipping malformed question {fields['id']}: {e}")
            continue
        seen.add(fields["id"])
    return questions


def validate_answer(question: Question, value: Any) -> bool:
    """Check one answer against the question it belongs to."""
    if isinstance(question, MultipleChoiceQuestion):
        return isinstance(value, str) and value in question.options
    if isinstance(question, LikertQuestion):
        answer = _as_int(value)
        return answer is not None and 1 <= answer <= question.scale
    if isinstance(question, OpenEndedQuestion):
        return isinstance(value, str)
    if isinstance(question, YesNoQuestion):
        return value in ("yes", "no")
    if isinstance(question, RatingQuestion):
        answer = _as_int(value)
        return answer is not None and 1 <= answer <= RATING_STARS
    raise TypeError(f"Unhandled question type: {type(question).__name__}")


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdecimal():
        try:
            return int(value)
        except ValueError:
            return None
    return None


def completion_rate(questions: List[Question], answers: Mapping[str, Any]) -> float:
    if not questions:
        return 0
    return len(answers) / len(questions) * 100


class SurveyDocument:
    """
    In-memory editing state of one survey: its ordered questions and the
    question currently selected in the builder.

    Mutations only touch local state. Nothing reaches the database until
    ``save`` is called.
    """

    def __init__(
        self,
        questions: Optional[List[Question]] = None,
        title: str = "New Survey",
        description: str = "Please provide your feedback",
    ):
        self.title = title
        self.description = description
        self.questions: List[Question] = list(questions or [])
        self.selected_id: Optional[str] = self.questions[0].id if self.questions else None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "SurveyDocument":
        return cls(
            load_from_persisted(row.get("questions")),
            title=row.get("title") or "New Survey",
            description=row.get("description") or "",
        )

    def _index(self, question_id: str) -> Optional[int]:
        for index, question in enumerate(self.questions):
            if question.id == question_id:
                return index
        return None

    def get(self, question_id: str) -> Optional[Question]:
        index = self._index(question_id)
        return self.questions[index] if index is not None else None

    @property
    def selected(self) -> Optional[Question]:
        return self.get(self.selected_id) if self.selected_id else None

    def _new_id(self) -> str:
        existing = {q.id for q in self.questions}
        question_id = generate_question_id()
        while question_id in existing:
            question_id = generate_question_id()
        return question_id

    def add_question(self, question_type: str) -> Question:
        if question_type not in QUESTION_MODELS:
            raise ValueError(f"Unknown question type: {question_type}")

        fields: Dict[str, Any] = {
            "id": self._new_id(),
            "type": question_type,
            "title": f"New {question_type} question",
            "required": False,
        }
        if question_type == "multiple-choice":
            fields["options"] = ["Option 1", "Option 2", "Option 3"]
        elif question_type == "likert":
            fields["scale"] = DEFAULT_SCALE

        question = _question_adapter.validate_python(fields)
        self.questions.append(question)
        self.selected_id = question.id
        return question

    def remove_question(self, question_id: str) -> None:
        self.questions = [q for q in self.questions if q.id != question_id]
        if self.selected_id == question_id:
            self.selected_id = self.questions[0].id if self.questions else None

    def update_question(self, question_id: str, updates: Mapping[str, Any]) -> Optional[Question]:
        """
        Shallow-merge ``updates`` into a question and re-validate it.

        Changing ``type`` re-reads the merged fields as the new variant, so
        fields the new variant does not know are dropped. Raises
        ``pydantic.ValidationError`` when the merge produces an invalid
        question and ``ValueError`` when a new id is already taken; the
        document is left as it was.
        """
        index = self._index(question_id)
        if index is None:
            return None

        merged = {**self.questions[index].model_dump(), **updates}
        model = QUESTION_MODELS.get(merged.get("type"))
        if model is None:
            raise ValueError(f"Unknown question type: {merged.get('type')}")
        question = model.model_validate({k: v for k, v in merged.items() if k in model.model_fields})
        if question.id != question_id and self._index(question.id) is not None:
            raise ValueError(f"Question id already in use: {question.id}")

        self.questions[index] = question
        if self.selected_id == question_id:
            self.selected_id = question.id
        return question

    def move_question(self, question_id: str, direction: str) -> None:
        if direction not in ("up", "down"):
            raise ValueError(f"Unknown direction: {direction}")

        index = self._index(question_id)
        if index is None:
            return
        if (direction == "up" and index == 0) or (direction == "down" and index == len(self.questions) - 1):
            return

        new_index = index - 1 if direction == "up" else index + 1
        self.questions[index], self.questions[new_index] = self.questions[new_index], self.questions[index]

    def to_persisted(self) -> List[Dict[str, Any]]:
        return [q.model_dump(mode="json") for q in self.questions]

    def save(self, repository, user_id: str, survey_id: Optional[str] = None, status: str = "draft") -> bool:
        """
        Write the document to the ``surveys`` table.

        Updates the row when ``survey_id`` is given, otherwise inserts a new
        survey owned by ``user_id``. The row is written with ``status``,
        draft by default. Failures are logged and reported as ``False``;
        local state is never rolled back and nothing is retried.
        """
        survey_data = {
            "title": self.title,
            "description": self.description,
            "questions": self.to_persisted(),
            "status": status,
            "updated_at": datetime.now(timezone.utc).isoformat(),
        }
        try:
            if survey_id:
                saved = repository.update_survey(survey_id, survey_data)
                if saved is None:
                    logger.error(f"Survey {survey_id} not updated, no rows returned")
                    return False
            else:
                repository.insert_survey({**survey_data, "user_id": user_id})
        except Exception as e:
            logger.error(f"Error saving survey: {e}", exc_info=True)
            return False

        logger.info(f"Survey saved with {len(self.questions)} questions")
        return True
