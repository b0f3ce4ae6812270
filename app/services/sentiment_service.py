# app/services/sentiment_service.py

import logging
import random
from typing import Any, List, Mapping, Optional, Protocol

from openai import OpenAI

from app.schemas.survey import OpenEndedQuestion, Question

logger = logging.getLogger(__name__)

MAX_SCORE = 5.0


class SentimentAnalyzer(Protocol):
    def score(self, questions: List[Question], answers: Mapping[str, Any]) -> Optional[float]:
        ...


class RandomSentimentAnalyzer:
    """
    Placeholder scorer: a uniform value in [0, 5).

    Stands in until real analysis is switched on with
    ``SENTIMENT_ANALYZER=openai``.
    """

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    def score(self, questions: List[Question], answers: Mapping[str, Any]) -> Optional[float]:
        return self.rng.random() * MAX_SCORE


class OpenAISentimentAnalyzer:
    """Scores the free-text answers of a submission with a chat model."""

    def __init__(self, client: OpenAI, model: str = "gpt-4o"):
        self.client = client
        self.model = model

    def _collect_text(self, questions: List[Question], answers: Mapping[str, Any]) -> str:
        lines = []
        for question in questions:
            answer = answers.get(question.id)
            if isinstance(question, OpenEndedQuestion) and isinstance(answer, str) and answer.strip():
                lines.append(f"Q: {question.title}\nA: {answer.strip()}")
        return "\n\n".join(lines)

    def score(self, questions: List[Question], answers: Mapping[str, Any]) -> Optional[float]:
        text = self._collect_text(questions, answers)
        if not text:
            return None

        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {
                        "role": "system",
                        "content": "Rate the overall sentiment of these survey answers from 0 (very negative) "
                        "to 5 (very positive). Reply with the number only.",
                    },
                    {"role": "user", "content": text},
                ],
                max_tokens=5,
                n=1,
                temperature=0,
            )
            reply = response.choices[0].message.content.strip()
            return min(max(float(reply), 0.0), MAX_SCORE)
        except Exception as e:
            logger.error(f"OpenAI sentiment scoring failed: {e}")
            return None


def get_sentiment_analyzer(settings) -> SentimentAnalyzer:
    if settings.SENTIMENT_ANALYZER == "openai":
        if not settings.OPENAI_API_KEY:
            logger.warning("SENTIMENT_ANALYZER=openai but OPENAI_API_KEY is not set, using random scores")
            return RandomSentimentAnalyzer()
        return OpenAISentimentAnalyzer(OpenAI(api_key=settings.OPENAI_API_KEY), model=settings.OPENAI_MODEL)
    return RandomSentimentAnalyzer()
