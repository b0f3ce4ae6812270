# app/schemas/distribution.py

from pydantic import BaseModel, Field
from typing import List, Optional


class EmailCampaignCreate(BaseModel):
    recipients: str
    subject: Optional[str] = None
    message: str = "We'd love to hear your feedback. Please take a moment to complete this survey."


class PushNotificationCreate(BaseModel):
    title: Optional[str] = None
    message: str = "We'd love your feedback! Click to take our survey."
    url: Optional[str] = None
    segments: List[str] = Field(default_factory=lambda: ["All"])


class DistributionResult(BaseModel):
    distribution_id: Optional[str] = None
    channel: str
    sent_count: int
    failed_recipients: List[str] = Field(default_factory=list)


class ShareLinks(BaseModel):
    share_url: str
    qr_code_url: str
    widget_code: str
