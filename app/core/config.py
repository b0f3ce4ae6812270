# app/core/config.py

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import AnyHttpUrl
from typing import List, Optional

class Settings(BaseSettings):
    SUPABASE_URL: str
    SUPABASE_ANON_KEY: str
    SUPABASE_SERVICE_ROLE_KEY: str
    SUPABASE_JWT_SECRET: str
    ALGORITHM: str = "HS256"

    # Base URL of the public survey pages, used for share links and QR codes
    PUBLIC_APP_URL: str = "http://localhost:3000"

    # Email delivery ("resend" or "sendgrid")
    EMAIL_SERVICE: str = "resend"
    EMAIL_API_KEY: str = ""
    EMAIL_FROM_ADDRESS: str = "noreply@feedbackpro.com"
    EMAIL_TEMPLATE_SURVEY_INVITE: str = "default-survey-template"
    EMAIL_TEMPLATE_REMINDER: str = "default-reminder-template"
    EMAIL_TEMPLATE_NOTIFICATION: str = "default-notification-template"

    # Push notifications (OneSignal)
    ONESIGNAL_APP_ID: str = "demo-app-id"
    ONESIGNAL_SAFARI_WEB_ID: str = "web.onesignal.auto.demo"
    ONESIGNAL_REST_API_KEY: str = "demo-rest-api-key"

    # QR codes ("qrserver" or "google-charts")
    QR_SERVICE: str = "qrserver"
    QR_API_KEY: Optional[str] = None
    QR_SIZE: int = 300

    # Sentiment scoring at submission time ("random" or "openai")
    SENTIMENT_ANALYZER: str = "random"
    OPENAI_API_KEY: Optional[str] = None
    OPENAI_MODEL: str = "gpt-4o"

    HTTP_TIMEOUT_SECONDS: float = 10.0

    # CORS origins
    BACKEND_CORS_ORIGINS: List[AnyHttpUrl] = []

    model_config = SettingsConfigDict(env_file=".env")

settings = Settings()
