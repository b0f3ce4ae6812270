# app/services/notifications.py

import logging
from html import escape
from typing import Any, Dict, List, Literal, Optional

import requests
from pydantic import BaseModel

logger = logging.getLogger(__name__)

RESEND_URL = "https://api.resend.com/emails"
SENDGRID_URL = "https://api.sendgrid.com/v3/mail/send"
ONESIGNAL_URL = "https://onesignal.com/api/v1/notifications"


class EmailTemplates(BaseModel):
    survey_invite: str = "default-survey-template"
    reminder: str = "default-reminder-template"
    notification: str = "default-notification-template"


class EmailConfig(BaseModel):
    service: Literal["resend", "sendgrid"] = "resend"
    api_key: str = ""
    default_from: str = "noreply@feedbackpro.com"
    templates: EmailTemplates = EmailTemplates()
    timeout: float = 10.0

    @classmethod
    def from_settings(cls, settings) -> "EmailConfig":
        return cls(
            service=settings.EMAIL_SERVICE,
            api_key=settings.EMAIL_API_KEY,
            default_from=settings.EMAIL_FROM_ADDRESS,
            templates=EmailTemplates(
                survey_invite=settings.EMAIL_TEMPLATE_SURVEY_INVITE,
                reminder=settings.EMAIL_TEMPLATE_REMINDER,
                notification=settings.EMAIL_TEMPLATE_NOTIFICATION,
            ),
            timeout=settings.HTTP_TIMEOUT_SECONDS,
        )


class PushConfig(BaseModel):
    app_id: str
    safari_web_id: str = ""
    rest_api_key: str
    timeout: float = 10.0

    @classmethod
    def from_settings(cls, settings) -> "PushConfig":
        return cls(
            app_id=settings.ONESIGNAL_APP_ID,
            safari_web_id=settings.ONESIGNAL_SAFARI_WEB_ID,
            rest_api_key=settings.ONESIGNAL_REST_API_KEY,
            timeout=settings.HTTP_TIMEOUT_SECONDS,
        )


class EmailService:
    """
    Sends email through Resend or SendGrid.

    Delivery is fire-and-forget: every failure is logged and reported as
    ``False``, nothing is retried.
    """

    def __init__(self, config: EmailConfig, session: Optional[requests.Session] = None):
        self.config = config
        self.session = session or requests.Session()

    def _payload(
        self,
        to: List[str],
        subject: str,
        html: Optional[str],
        template_id: Optional[str],
        data: Optional[Dict[str, Any]],
    ) -> Dict[str, Any]:
        if self.config.service == "resend":
            payload: Dict[str, Any] = {"from": self.config.default_from, "to": to, "subject": subject}
            if html is not None:
                payload["html"] = html
            if template_id:
                payload["template_id"] = template_id
                payload["data"] = data or {}
            return payload

        payload = {
            "personalizations": [{"to": [{"email": email} for email in to]}],
            "from": {"email": self.config.default_from},
            "subject": subject,
        }
        if html is not None:
            payload["content"] = [{"type": "text/html", "value": html}]
        if template_id:
            payload["template_id"] = template_id
            payload["dynamic_template_data"] = data or {}
        return payload

    def send_email(
        self,
        to: List[str],
        subject: str,
        html: Optional[str] = None,
        template_id: Optional[str] = None,
        data: Optional[Dict[str, Any]] = None,
    ) -> bool:
        url = RESEND_URL if self.config.service == "resend" else SENDGRID_URL
        try:
            response = self.session.post(
                url,
                json=self._payload(to, subject, html, template_id, data),
                headers={"Authorization": f"Bearer {self.config.api_key}"},
                timeout=self.config.timeout,
            )
            if not response.ok:
                logger.error(f"Failed to send email via {self.config.service}: {response.status_code} {response.text}")
                return False
            return True
        except requests.RequestException as e:
            logger.error(f"EmailService error: {e}")
            return False


class PushService:
    """Sends web push notifications through OneSignal."""

    def __init__(self, config: PushConfig, session: Optional[requests.Session] = None):
        self.config = config
        self.session = session or requests.Session()

    def send_notification(
        self,
        title: str,
        message: str,
        url: Optional[str] = None,
        segments: Optional[List[str]] = None,
    ) -> bool:
        payload: Dict[str, Any] = {
            "app_id": self.config.app_id,
            "included_segments": segments or ["All"],
            "headings": {"en": title},
            "contents": {"en": message},
        }
        if url:
            payload["url"] = url
            payload["web_buttons"] = [{"id": "open-url", "text": "Open", "url": url}]

        try:
            response = self.session.post(
                ONESIGNAL_URL,
                json=payload,
                headers={"Authorization": f"Basic {self.config.rest_api_key}"},
                timeout=self.config.timeout,
            )
            if not response.ok:
                logger.error(f"Failed to send push notification: {response.status_code} {response.text}")
                return False
            return True
        except requests.RequestException as e:
            logger.error(f"PushService error: {e}")
            return False


def render_invite_html(subject: str, message: str, share_url: str) -> str:
    subject, message, share_url = escape(subject), escape(message), escape(share_url)
    return (
        '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">'
        f'<h2 style="color: #1e40af;">{subject}</h2>'
        f"<p>{message}</p>"
        '<div style="margin: 30px 0;">'
        f'<a href="{share_url}" style="background-color: #1e40af; color: white; padding: 12px 24px; '
        'text-decoration: none; border-radius: 6px; display: inline-block;">Take Survey</a>'
        "</div>"
        f'<p style="color: #666; font-size: 14px;">Survey Link: <a href="{share_url}">{share_url}</a></p>'
        "</div>"
    )
