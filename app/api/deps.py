# app/api/deps.py

import logging
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt
from jose.exceptions import JWTError, ExpiredSignatureError, JWTClaimsError
from postgrest.exceptions import APIError
from supabase import Client
from app.core.config import settings
from app.db.repository import SurveyRepository
from app.db.session import get_supabase
from app.schemas.user import User
from app.services.notifications import EmailConfig, EmailService, PushConfig, PushService
from app.services.qr_code import QrCodeService, QrConfig
from app.services.sentiment_service import SentimentAnalyzer, get_sentiment_analyzer
from typing import Optional

logger = logging.getLogger(__name__)
security = HTTPBearer()

def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )

def get_current_user(credentials: HTTPAuthorizationCredentials = Depends(security)) -> User:
    """Resolve the Supabase Auth user from the bearer token."""
    token = credentials.credentials
    logger.debug(f"Received token: {token[:10]}...")
    try:
        # Supabase Auth issues user tokens for the "authenticated" audience
        payload = jwt.decode(
            token,
            settings.SUPABASE_JWT_SECRET,
            algorithms=[settings.ALGORITHM],
            audience="authenticated",
            issuer=f"{settings.SUPABASE_URL}/auth/v1",
        )
    except ExpiredSignatureError:
        logger.warning("Token has expired")
        raise _unauthorized("Token has expired")
    except JWTClaimsError as e:
        logger.error(f"JWT claims error: {e}")
        raise _unauthorized(f"Invalid claims: {e}")
    except JWTError as e:
        logger.error(f"JWT error: {e}")
        raise _unauthorized("Could not validate credentials")

    user_id: Optional[str] = payload.get("sub")
    email: Optional[str] = payload.get("email")
    if user_id is None or email is None:
        logger.warning("Token has no subject or email claim")
        raise _unauthorized("Could not validate credentials")

    logger.info(f"User authenticated: {user_id}")
    return User(id=user_id, email=email)

def get_repository(supabase: Client = Depends(get_supabase)) -> SurveyRepository:
    return SurveyRepository(supabase)

def get_email_service() -> EmailService:
    return EmailService(EmailConfig.from_settings(settings))

def get_push_service() -> PushService:
    return PushService(PushConfig.from_settings(settings))

def get_qr_service() -> QrCodeService:
    return QrCodeService(QrConfig.from_settings(settings))

def get_sentiment() -> SentimentAnalyzer:
    return get_sentiment_analyzer(settings)

def get_owned_survey(repository: SurveyRepository, survey_id: str, current_user: User) -> dict:
    try:
        row = repository.get_survey(survey_id)
    except APIError as e:
        logger.error(f"Supabase API error: {str(e)}")
        raise HTTPException(status_code=400, detail="Invalid survey ID format")
    if not row or row.get("user_id") != str(current_user.id):
        logger.warning(f"Survey {survey_id} not found for user {current_user.id}")
        raise HTTPException(status_code=404, detail="Survey not found or not authorized")
    return row
