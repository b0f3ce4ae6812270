import logging
import time
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from app.api.v1.api import api_router
from app.core.config import settings

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("app.requests")

app = FastAPI(title="FeedbackPro API")

def cors_origins():
    origins = [str(origin).rstrip("/") for origin in settings.BACKEND_CORS_ORIGINS]
    # Public survey pages and local development
    origins += [settings.PUBLIC_APP_URL.rstrip("/"), "http://localhost:3000"]
    return list(dict.fromkeys(origins))

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

class SensitiveDataFilter(logging.Filter):
    sensitive_keywords = ('password', 'secret', 'api_key', 'access_token')

    def filter(self, record):
        message = record.msg if isinstance(record.msg, str) else ""
        if any(k in message.lower() for k in self.sensitive_keywords):
            record.msg = "[REDACTED]"
            record.args = ()
        return True

for handler in logging.getLogger().handlers:
    handler.addFilter(SensitiveDataFilter())

def sanitize_headers(headers):
    return {k: (v[:10] + '...') if k.lower() == 'authorization' else v for k, v in headers.items()}


@app.middleware("http")
async def log_request(request: Request, call_next):
    started = time.perf_counter()
    logger.debug(f"Request headers: {sanitize_headers(request.headers)}")
    response = await call_next(request)
    elapsed_ms = (time.perf_counter() - started) * 1000
    logger.info(f"{request.method} {request.url.path} -> {response.status_code} ({elapsed_ms:.0f} ms)")
    return response

app.include_router(api_router, prefix="/api/v1")

@app.get("/")
async def root():
    return {"message": "Welcome to the FeedbackPro API"}
