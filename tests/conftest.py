# tests/conftest.py

import os
import time
import uuid
from datetime import datetime, timezone

os.environ.setdefault("SUPABASE_URL", "https://example.supabase.co")
os.environ.setdefault("SUPABASE_ANON_KEY", "test-anon-key")
os.environ.setdefault("SUPABASE_SERVICE_ROLE_KEY", "test-service-role-key")
os.environ.setdefault("SUPABASE_JWT_SECRET", "test-jwt-secret")

import pytest
from fastapi.testclient import TestClient
from jose import jwt

from app.api import deps
from app.core.config import settings
from app.main import app
from app.services.analytics import parse_timestamp
from app.services.notifications import EmailConfig, EmailService, PushConfig, PushService
from app.services.qr_code import QrCodeService, QrConfig

USER_ID = "11111111-1111-1111-1111-111111111111"
OTHER_USER_ID = "22222222-2222-2222-2222-222222222222"


def make_token(user_id=USER_ID, email="owner@example.com", expires_in=3600, audience="authenticated"):
    claims = {
        "sub": user_id,
        "email": email,
        "aud": audience,
        "iss": f"{settings.SUPABASE_URL}/auth/v1",
        "exp": int(time.time()) + expires_in,
    }
    return jwt.encode(claims, settings.SUPABASE_JWT_SECRET, algorithm=settings.ALGORITHM)


class FakeHTTPResponse:
    def __init__(self, status_code=200, content=b"", text=""):
        self.status_code = status_code
        self.content = content
        self.text = text

    @property
    def ok(self):
        return self.status_code < 400

    def raise_for_status(self):
        import requests
        if not self.ok:
            raise requests.HTTPError(f"{self.status_code} error")


class FakeSession:
    """Records outgoing calls and answers with a fixed status code."""

    def __init__(self, status_code=200, content=b"", fail_for=()):
        self.status_code = status_code
        self.content = content
        self.fail_for = set(fail_for)
        self.posts = []
        self.gets = []

    def post(self, url, json=None, headers=None, timeout=None):
        self.posts.append({"url": url, "json": json, "headers": headers, "timeout": timeout})
        recipients = (json or {}).get("to") or []
        if any(r in self.fail_for for r in recipients):
            return FakeHTTPResponse(500, text="rejected")
        return FakeHTTPResponse(self.status_code, text="ok")

    def get(self, url, timeout=None):
        self.gets.append(url)
        return FakeHTTPResponse(self.status_code, content=self.content)


class FixedSentimentAnalyzer:
    def __init__(self, value=4.0):
        self.value = value
        self.calls = []

    def score(self, questions, answers):
        self.calls.append(dict(answers))
        return self.value


class FakeRepository:
    """In-memory stand-in for SurveyRepository with the same method surface."""

    def __init__(self):
        self.surveys = {}
        self.responses = []
        self.distributions = {}
        self.automations = {}
        self.automation_logs = []
        self.fail_writes = False

    def _stamp(self, row):
        now = datetime.now(timezone.utc).isoformat()
        row.setdefault("id", str(uuid.uuid4()))
        row.setdefault("created_at", now)
        row.setdefault("updated_at", now)
        return row

    def _check_writes(self):
        if self.fail_writes:
            raise RuntimeError("backend unavailable")

    # Surveys

    def list_surveys(self, user_id, survey_id=None, order="updated_at"):
        return [
            dict(s) for s in self.surveys.values()
            if s["user_id"] == user_id and (survey_id is None or s["id"] == survey_id)
        ]

    def get_survey(self, survey_id):
        row = self.surveys.get(survey_id)
        return dict(row) if row else None

    def insert_survey(self, survey_data):
        self._check_writes()
        row = self._stamp(dict(survey_data))
        self.surveys[row["id"]] = row
        return dict(row)

    def update_survey(self, survey_id, survey_data):
        self._check_writes()
        if survey_id not in self.surveys:
            return None
        self.surveys[survey_id].update(survey_data)
        return dict(self.surveys[survey_id])

    def delete_survey(self, survey_id):
        self.surveys.pop(survey_id, None)
        self.responses = [r for r in self.responses if r["survey_id"] != survey_id]

    # Responses

    def list_responses(self, survey_ids, start=None, end=None):
        rows = []
        for response in self.responses:
            if response["survey_id"] not in survey_ids:
                continue
            submitted = parse_timestamp(response.get("submitted_at"))
            if start is not None and (submitted is None or submitted < start):
                continue
            if end is not None and (submitted is None or submitted > end):
                continue
            rows.append(dict(response))
        return rows

    def list_responses_with_titles(self, user_id):
        rows = []
        for response in self.responses:
            survey = self.surveys.get(response["survey_id"])
            if survey and survey["user_id"] == user_id:
                rows.append({**response, "survey_title": survey["title"]})
        return sorted(rows, key=lambda r: r.get("submitted_at") or "", reverse=True)

    def insert_response(self, response_data):
        self._check_writes()
        row = dict(response_data)
        row.setdefault("id", str(uuid.uuid4()))
        self.responses.append(row)
        return dict(row)

    # Distributions

    def insert_distribution(self, distribution_data):
        row = self._stamp(dict(distribution_data))
        self.distributions[row["id"]] = row
        return dict(row)

    def update_distribution(self, distribution_id, distribution_data):
        self.distributions[distribution_id].update(distribution_data)

    # Automations

    def list_automations(self, user_id, active_only=False):
        return [
            dict(a) for a in self.automations.values()
            if a["user_id"] == user_id and (a.get("is_active") or not active_only)
        ]

    def get_automation(self, automation_id):
        row = self.automations.get(automation_id)
        return dict(row) if row else None

    def insert_automation(self, automation_data):
        self._check_writes()
        row = self._stamp(dict(automation_data))
        self.automations[row["id"]] = row
        return dict(row)

    def update_automation(self, automation_id, automation_data):
        if automation_id not in self.automations:
            return None
        self.automations[automation_id].update(automation_data)
        return dict(self.automations[automation_id])

    def delete_automation(self, automation_id):
        self.automations.pop(automation_id, None)

    def list_automation_logs(self, automation_ids, limit=50):
        logs = [log for log in self.automation_logs if log["automation_id"] in automation_ids]
        return logs[:limit]

    def insert_automation_log(self, log_data):
        self.automation_logs.append({"id": str(uuid.uuid4()), **log_data})

    # Helpers for tests

    def add_survey(self, user_id=USER_ID, **fields):
        row = {
            "user_id": user_id,
            "title": "Customer Satisfaction",
            "description": "Quarterly pulse",
            "status": "active",
            "questions": [],
            "settings": {},
        }
        row.update(fields)
        return self.insert_survey(row)

    def add_response(self, survey_id, **fields):
        row = {
            "survey_id": survey_id,
            "respondent_email": None,
            "respondent_name": None,
            "responses": {},
            "sentiment_score": None,
            "completion_rate": None,
            "submitted_at": datetime.now(timezone.utc).isoformat(),
        }
        row.update(fields)
        return self.insert_response(row)


@pytest.fixture
def repository():
    return FakeRepository()


@pytest.fixture
def http_session():
    return FakeSession()


@pytest.fixture
def sentiment():
    return FixedSentimentAnalyzer()


@pytest.fixture
def client(repository, http_session, sentiment):
    app.dependency_overrides[deps.get_repository] = lambda: repository
    app.dependency_overrides[deps.get_email_service] = lambda: EmailService(EmailConfig(api_key="re_test"), http_session)
    app.dependency_overrides[deps.get_push_service] = lambda: PushService(
        PushConfig(app_id="app-id", rest_api_key="rest-key"), http_session
    )
    app.dependency_overrides[deps.get_qr_service] = lambda: QrCodeService(QrConfig(), http_session)
    app.dependency_overrides[deps.get_sentiment] = lambda: sentiment
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    return {"Authorization": f"Bearer {make_token()}"}


@pytest.fixture
def other_auth_headers():
    return {"Authorization": f"Bearer {make_token(OTHER_USER_ID, 'other@example.com')}"}
