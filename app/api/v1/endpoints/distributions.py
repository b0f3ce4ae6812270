# app/api/v1/endpoints/distributions.py

import re
from fastapi import APIRouter, Depends, HTTPException, Response
from datetime import datetime, timezone
from typing import List
import requests
from app.schemas.distribution import DistributionResult, EmailCampaignCreate, PushNotificationCreate, ShareLinks
from app.schemas.user import User
from app.api import deps
from app.db.repository import SurveyRepository
from app.services.link_generator import build_survey_url, build_widget_code
from app.services.notifications import EmailService, PushService, render_invite_html
from app.services.qr_code import QrCodeService
import logging

logger = logging.getLogger(__name__)

router = APIRouter()

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

def parse_recipients(raw: str) -> List[str]:
    """Split a comma separated recipient list, keeping entries that contain "@"."""
    recipients = [email.strip() for email in raw.split(",")]
    return [email for email in recipients if email and "@" in email]

def _now() -> str:
    return datetime.now(timezone.utc).isoformat()

@router.post("/{survey_id}/distribution/email", response_model=DistributionResult)
def send_email_campaign(
    survey_id: str,
    campaign: EmailCampaignCreate,
    current_user: User = Depends(deps.get_current_user),
    repository: SurveyRepository = Depends(deps.get_repository),
    email_service: EmailService = Depends(deps.get_email_service),
):
    survey = deps.get_owned_survey(repository, survey_id, current_user)

    recipients = parse_recipients(campaign.recipients)
    if not recipients:
        raise HTTPException(status_code=400, detail="No valid email addresses found")
    invalid = [email for email in recipients if not EMAIL_PATTERN.match(email)]
    if invalid:
        raise HTTPException(status_code=400, detail=f"Invalid email addresses: {', '.join(invalid)}")

    distribution = repository.insert_distribution({
        "survey_id": survey_id,
        "channel": "email",
        "recipient_list": recipients,
        "sent_count": len(recipients),
        "opened_count": 0,
        "response_count": 0,
        "created_at": _now(),
        "updated_at": _now(),
    })

    subject = campaign.subject or f"Feedback Request: {survey.get('title') or ''}"
    html = render_invite_html(subject, campaign.message, build_survey_url(survey_id))
    failed = [email for email in recipients if not email_service.send_email([email], subject, html=html)]
    sent_count = len(recipients) - len(failed)

    if distribution.get("id"):
        repository.update_distribution(distribution["id"], {"sent_count": sent_count, "updated_at": _now()})

    if sent_count == 0:
        logger.error(f"Email campaign for survey {survey_id} failed for all {len(recipients)} recipients")
        raise HTTPException(status_code=502, detail="Failed to send email campaign")

    logger.info(f"Survey {survey_id} sent to {sent_count} recipients via {email_service.config.service}")
    return DistributionResult(
        distribution_id=distribution.get("id"),
        channel="email",
        sent_count=sent_count,
        failed_recipients=failed,
    )

@router.post("/{survey_id}/distribution/push", response_model=DistributionResult)
def send_push_notification(
    survey_id: str,
    notification: PushNotificationCreate,
    current_user: User = Depends(deps.get_current_user),
    repository: SurveyRepository = Depends(deps.get_repository),
    push_service: PushService = Depends(deps.get_push_service),
):
    survey = deps.get_owned_survey(repository, survey_id, current_user)

    title = notification.title or f"New Survey: {survey.get('title') or ''}"
    url = notification.url or build_survey_url(survey_id)
    if not push_service.send_notification(title, notification.message, url, notification.segments):
        raise HTTPException(status_code=502, detail="Failed to send push notification")

    distribution = repository.insert_distribution({
        "survey_id": survey_id,
        "channel": "push",
        "recipient_list": ["all_subscribers"],
        "sent_count": 1,
        "opened_count": 0,
        "response_count": 0,
        "created_at": _now(),
        "updated_at": _now(),
    })
    return DistributionResult(distribution_id=distribution.get("id"), channel="push", sent_count=1)

@router.get("/{survey_id}/distribution/links", response_model=ShareLinks)
def get_share_links(
    survey_id: str,
    current_user: User = Depends(deps.get_current_user),
    repository: SurveyRepository = Depends(deps.get_repository),
    qr_service: QrCodeService = Depends(deps.get_qr_service),
):
    deps.get_owned_survey(repository, survey_id, current_user)
    share_url = build_survey_url(survey_id)
    return ShareLinks(
        share_url=share_url,
        qr_code_url=qr_service.generate_qr_code_url(share_url),
        widget_code=build_widget_code(survey_id),
    )

@router.get("/{survey_id}/distribution/qr")
def download_qr_code(
    survey_id: str,
    current_user: User = Depends(deps.get_current_user),
    repository: SurveyRepository = Depends(deps.get_repository),
    qr_service: QrCodeService = Depends(deps.get_qr_service),
):
    deps.get_owned_survey(repository, survey_id, current_user)
    try:
        image = qr_service.fetch_image(build_survey_url(survey_id))
    except requests.RequestException:
        raise HTTPException(status_code=502, detail="Failed to generate QR code")

    media_type = "image/svg+xml" if qr_service.config.format == "svg" else "image/png"
    return Response(
        content=image,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="survey-qr-{survey_id}.{qr_service.config.format}"'},
    )
