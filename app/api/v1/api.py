from fastapi import APIRouter
from app.api.v1.endpoints import users, surveys, distributions, responses, analytics, automations

api_router = APIRouter()
api_router.include_router(users.router, prefix="/users", tags=["users"])
api_router.include_router(surveys.router, prefix="/surveys", tags=["surveys"])
api_router.include_router(distributions.router, prefix="/surveys", tags=["distribution"])
api_router.include_router(responses.router, prefix="/responses", tags=["responses"])
api_router.include_router(analytics.router, prefix="/analytics", tags=["analytics"])
api_router.include_router(automations.router, prefix="/automations", tags=["automations"])
