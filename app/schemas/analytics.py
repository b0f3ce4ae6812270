# app/schemas/analytics.py

from pydantic import BaseModel, Field
from typing import List
from datetime import datetime


class DateWindow(BaseModel):
    start: datetime
    end: datetime


class TrendBucket(BaseModel):
    date: str
    count: int


class SentimentBucket(BaseModel):
    label: str
    value: int
    color: str


class SurveyPerformance(BaseModel):
    title: str
    responses: int
    sentiment: float


class ChannelCount(BaseModel):
    channel: str
    count: int


class AnalyticsSummary(BaseModel):
    total_surveys: int = 0
    total_responses: int = 0
    average_sentiment: float = 0
    completion_rate: float = 0
    response_trend: List[TrendBucket] = Field(default_factory=list)
    sentiment_distribution: List[SentimentBucket] = Field(default_factory=list)
    top_performing_surveys: List[SurveyPerformance] = Field(default_factory=list)
    responses_by_channel: List[ChannelCount] = Field(default_factory=list)


class DashboardStats(BaseModel):
    total_surveys: int = 0
    total_responses: int = 0
    avg_sentiment: float = 0
    completion_rate: int = 0
