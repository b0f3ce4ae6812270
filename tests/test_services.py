# tests/test_services.py

import random
from datetime import date
from types import SimpleNamespace

import pytest
import requests

from app.core.config import settings
from app.schemas.survey import OpenEndedQuestion, RatingQuestion
from app.services.automations import default_actions, default_trigger_conditions, matches, run_automations
from app.services.export import CSV_HEADERS, export_filename, export_responses_csv, filter_responses
from app.services.link_generator import build_survey_url, build_widget_code
from app.services.notifications import (
    ONESIGNAL_URL,
    RESEND_URL,
    SENDGRID_URL,
    EmailConfig,
    EmailService,
    PushConfig,
    PushService,
    render_invite_html,
)
from app.services.qr_code import QrCodeService, QrConfig
from app.services.sentiment_service import OpenAISentimentAnalyzer, RandomSentimentAnalyzer, get_sentiment_analyzer


class BrokenSession:
    def post(self, *args, **kwargs):
        raise requests.ConnectionError("connection refused")

    def get(self, *args, **kwargs):
        raise requests.ConnectionError("connection refused")


# Email

def test_resend_payload_and_auth(http_session):
    service = EmailService(EmailConfig(api_key="re_123", default_from="team@example.com"), http_session)

    assert service.send_email(["a@example.com"], "Hello", html="<p>Hi</p>") is True

    call = http_session.posts[0]
    assert call["url"] == RESEND_URL
    assert call["headers"] == {"Authorization": "Bearer re_123"}
    assert call["json"] == {"from": "team@example.com", "to": ["a@example.com"], "subject": "Hello", "html": "<p>Hi</p>"}


def test_sendgrid_payload_with_template(http_session):
    service = EmailService(EmailConfig(service="sendgrid", api_key="sg_123"), http_session)

    service.send_email(["a@example.com", "b@example.com"], "Hello", template_id="tpl", data={"name": "Ana"})

    call = http_session.posts[0]
    assert call["url"] == SENDGRID_URL
    assert call["json"]["personalizations"] == [{"to": [{"email": "a@example.com"}, {"email": "b@example.com"}]}]
    assert call["json"]["template_id"] == "tpl"
    assert call["json"]["dynamic_template_data"] == {"name": "Ana"}
    assert "content" not in call["json"]


def test_email_rejected_by_provider_returns_false(http_session):
    http_session.status_code = 422
    service = EmailService(EmailConfig(api_key="re_123"), http_session)

    assert service.send_email(["a@example.com"], "Hello", html="x") is False


def test_email_network_error_returns_false():
    service = EmailService(EmailConfig(api_key="re_123"), BrokenSession())
    assert service.send_email(["a@example.com"], "Hello", html="x") is False


def test_invite_html_escapes_user_text():
    html = render_invite_html("<b>Survey</b>", "Tell us & win", "https://app.example.com/survey/1")

    assert "&lt;b&gt;Survey&lt;/b&gt;" in html
    assert "Tell us &amp; win" in html
    assert 'href="https://app.example.com/survey/1"' in html


# Push

def test_push_notification_payload(http_session):
    service = PushService(PushConfig(app_id="app-1", rest_api_key="key-1"), http_session)

    assert service.send_notification("New survey", "Please answer", url="https://x.test/s/1") is True

    call = http_session.posts[0]
    assert call["url"] == ONESIGNAL_URL
    assert call["headers"] == {"Authorization": "Basic key-1"}
    assert call["json"]["app_id"] == "app-1"
    assert call["json"]["included_segments"] == ["All"]
    assert call["json"]["headings"] == {"en": "New survey"}
    assert call["json"]["web_buttons"][0]["url"] == "https://x.test/s/1"


def test_push_failure_returns_false(http_session):
    http_session.status_code = 400
    service = PushService(PushConfig(app_id="app-1", rest_api_key="key-1"), http_session)

    assert service.send_notification("t", "m") is False
    assert "web_buttons" not in http_session.posts[0]["json"]


# QR codes

def test_qrserver_url_encodes_data():
    service = QrCodeService(QrConfig(size=200))

    url = service.generate_qr_code_url("https://app.example.com/survey/1?a=b")

    assert url.startswith("https://api.qrserver.com/v1/create-qr-code/?")
    assert "data=https%3A%2F%2Fapp.example.com%2Fsurvey%2F1%3Fa%3Db" in url
    assert "size=200x200" in url
    assert "format=png" in url


def test_google_charts_url():
    service = QrCodeService(QrConfig(service="google-charts"))
    assert service.generate_qr_code_url("abc") == "https://chart.googleapis.com/chart?cht=qr&chs=300x300&chl=abc"


def test_fetch_image_returns_bytes(http_session):
    http_session.content = b"\x89PNG"
    service = QrCodeService(QrConfig(), http_session)

    assert service.fetch_image("abc") == b"\x89PNG"
    assert http_session.gets[0].startswith("https://api.qrserver.com/")


def test_fetch_image_raises_on_http_error(http_session):
    http_session.status_code = 503
    service = QrCodeService(QrConfig(), http_session)

    with pytest.raises(requests.HTTPError):
        service.fetch_image("abc")


# Sentiment

def test_random_sentiment_is_in_range():
    analyzer = RandomSentimentAnalyzer(random.Random(7))
    scores = [analyzer.score([], {}) for _ in range(50)]
    assert all(0 <= s < 5 for s in scores)


class FakeCompletions:
    def __init__(self, reply=None, error=None):
        self.reply = reply
        self.error = error
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error:
            raise self.error
        message = SimpleNamespace(content=self.reply)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def fake_openai(completions):
    return SimpleNamespace(chat=SimpleNamespace(completions=completions))


QUESTIONS = [OpenEndedQuestion(id="q1", title="Anything else?"), RatingQuestion(id="q2", title="Stars")]


def test_openai_sentiment_scores_free_text():
    completions = FakeCompletions(reply=" 4.5 ")
    analyzer = OpenAISentimentAnalyzer(fake_openai(completions), model="gpt-test")

    assert analyzer.score(QUESTIONS, {"q1": "Loved it", "q2": 5}) == pytest.approx(4.5)
    assert completions.calls[0]["model"] == "gpt-test"
    assert "Loved it" in completions.calls[0]["messages"][1]["content"]


def test_openai_sentiment_clamps_out_of_range_reply():
    analyzer = OpenAISentimentAnalyzer(fake_openai(FakeCompletions(reply="9")))
    assert analyzer.score(QUESTIONS, {"q1": "Wow"}) == 5.0


def test_openai_sentiment_without_text_skips_call():
    completions = FakeCompletions(reply="3")
    analyzer = OpenAISentimentAnalyzer(fake_openai(completions))

    assert analyzer.score(QUESTIONS, {"q2": 4}) is None
    assert completions.calls == []


def test_openai_sentiment_errors_give_none():
    analyzer = OpenAISentimentAnalyzer(fake_openai(FakeCompletions(error=RuntimeError("rate limited"))))
    assert analyzer.score(QUESTIONS, {"q1": "Fine"}) is None


def test_openai_selected_without_key_falls_back_to_random():
    config = SimpleNamespace(SENTIMENT_ANALYZER="openai", OPENAI_API_KEY=None, OPENAI_MODEL="gpt-4o")
    assert isinstance(get_sentiment_analyzer(config), RandomSentimentAnalyzer)


# Automations

def test_default_trigger_conditions():
    assert default_trigger_conditions("sentiment_threshold") == {"threshold": 3.0, "operator": "less_than"}
    assert default_trigger_conditions("response_received") == {"survey_id": "any"}
    assert default_trigger_conditions("unknown") == {}


def test_default_actions_fall_back_to_admin():
    assert default_actions("Alert", None)[0]["config"]["to"] == "admin@example.com"
    assert default_actions("Alert", "me@example.com")[0]["config"]["subject"] == "Automation: Alert"


@pytest.mark.parametrize(
    "trigger_type, conditions, response, expected",
    [
        ("response_received", {"survey_id": "any"}, {}, True),
        ("response_received", {"survey_id": "s1"}, {}, True),
        ("response_received", {"survey_id": "s2"}, {}, False),
        ("survey_completed", {"completion_rate": 100}, {"completion_rate": 100}, True),
        ("survey_completed", {"completion_rate": 100}, {"completion_rate": 50}, False),
        ("sentiment_threshold", {"threshold": 3.0, "operator": "less_than"}, {"sentiment_score": 2.0}, True),
        ("sentiment_threshold", {"threshold": 3.0, "operator": "less_than"}, {"sentiment_score": 4.0}, False),
        ("sentiment_threshold", {"threshold": 3.0, "operator": "greater_than"}, {"sentiment_score": 4.0}, True),
        ("sentiment_threshold", {"threshold": 3.0}, {"sentiment_score": None}, False),
        ("time_based", {"schedule": "daily"}, {}, False),
    ],
)
def test_automation_matching(trigger_type, conditions, response, expected):
    automation = {"trigger_type": trigger_type, "trigger_conditions": conditions}
    assert matches(automation, "s1", response) is expected


def make_automation(automation_id, trigger_type="response_received", is_active=True, to="me@example.com"):
    return {
        "id": automation_id,
        "name": automation_id,
        "is_active": is_active,
        "trigger_type": trigger_type,
        "trigger_conditions": default_trigger_conditions(trigger_type),
        "actions": default_actions(automation_id, to),
    }


def test_run_automations_logs_each_run(repository, http_session):
    http_session.fail_for = {"broken@example.com"}
    email_service = EmailService(EmailConfig(api_key="re_test"), http_session)
    automations = [
        make_automation("a1"),
        make_automation("a2", is_active=False),
        make_automation("a3", trigger_type="time_based"),
        make_automation("a4", to="broken@example.com"),
    ]

    fired = run_automations(repository, automations, "s1", {"id": "r1"}, email_service)

    assert fired == 2
    logs = {log["automation_id"]: log for log in repository.automation_logs}
    assert set(logs) == {"a1", "a4"}
    assert logs["a1"]["status"] == "success"
    assert logs["a1"]["survey_response_id"] == "r1"
    assert logs["a4"]["status"] == "failed"
    assert "broken@example.com" in logs["a4"]["error_message"]


def test_run_automations_escapes_body_and_skips_malformed_actions(repository, http_session):
    email_service = EmailService(EmailConfig(api_key="re_test"), http_session)
    automation = make_automation("a1")
    automation["actions"] = [
        "email",
        None,
        {"type": "email", "config": {"to": "me@example.com", "body": "<script>alert(1)</script>"}},
    ]

    fired = run_automations(repository, [automation], "s1", {"id": "r1"}, email_service)

    assert fired == 1
    assert repository.automation_logs[0]["status"] == "success"
    html = http_session.posts[0]["json"]["html"]
    assert "<script>" not in html
    assert html == "<p>&lt;script&gt;alert(1)&lt;/script&gt;</p>"


def test_run_automations_with_non_mapping_config_reports_missing_recipient(repository, http_session):
    email_service = EmailService(EmailConfig(api_key="re_test"), http_session)
    automation = make_automation("a1")
    automation["actions"] = [{"type": "email", "config": "me@example.com"}]

    run_automations(repository, [automation], "s1", {"id": "r1"}, email_service)

    assert repository.automation_logs[0]["status"] == "failed"
    assert http_session.posts == []


# Export

ROWS = [
    {
        "survey_id": "s1",
        "survey_title": "Onboarding",
        "respondent_email": "ana@example.com",
        "respondent_name": "Ana",
        "sentiment_score": 4.2,
        "completion_rate": 100,
        "submitted_at": "2024-05-15T12:30:00",
        "responses": {"q1": "Great"},
    },
    {
        "survey_id": "s2",
        "survey_title": "Churn",
        "respondent_email": None,
        "respondent_name": None,
        "sentiment_score": None,
        "completion_rate": None,
        "submitted_at": None,
        "responses": {},
    },
]


def test_filter_responses_by_search_and_survey():
    assert filter_responses(ROWS, "ANA") == [ROWS[0]]
    assert filter_responses(ROWS, "churn") == [ROWS[1]]
    assert filter_responses(ROWS, "", "s2") == [ROWS[1]]
    assert filter_responses(ROWS, "", "all") == ROWS
    assert filter_responses(ROWS, "onboarding", "s2") == []


def test_export_csv_layout():
    lines = export_responses_csv(ROWS).split("\n")

    assert lines[0] == ",".join(CSV_HEADERS)
    assert lines[1] == 'Onboarding,ana@example.com,Ana,4.2,100,2024-05-15 12:30:00,"{""q1"": ""Great""}"'
    assert lines[2] == "Churn,,,,,,{}"


def test_export_empty_is_blank():
    assert export_responses_csv([]) == ""


def test_export_filename():
    assert export_filename(date(2024, 5, 15)) == "survey-responses-2024-05-15.csv"


# Links

def test_build_survey_url():
    assert build_survey_url("abc") == f"{settings.PUBLIC_APP_URL.rstrip('/')}/survey/abc"


def test_build_widget_code_embeds_survey_page():
    code = build_widget_code("abc")

    assert '<div id="survey-widget-abc">' in code
    assert f"widget.src = '{build_survey_url('abc')}?widget=true';" in code
    assert "document.getElementById('survey-widget-abc').appendChild(widget);" in code
