# app/services/link_generator.py

import secrets
import string
from app.core.config import settings

_ID_ALPHABET = string.digits + string.ascii_lowercase

def generate_question_id() -> str:
    return "q_" + "".join(secrets.choice(_ID_ALPHABET) for _ in range(9))

def build_survey_url(survey_id: str) -> str:
    return f"{settings.PUBLIC_APP_URL.rstrip('/')}/survey/{survey_id}"

def build_widget_code(survey_id: str) -> str:
    """HTML snippet that embeds the survey as a fixed iframe on another site."""
    container_id = f"survey-widget-{survey_id}"
    return (
        "<!-- Survey Widget -->\n"
        f'<div id="{container_id}"></div>\n'
        "<script>\n"
        "  (function() {\n"
        "    var widget = document.createElement('iframe');\n"
        f"    widget.src = '{build_survey_url(survey_id)}?widget=true';\n"
        "    widget.style.cssText = 'position:fixed;bottom:20px;right:20px;width:400px;height:600px;"
        "border:none;border-radius:8px;box-shadow:0 4px 20px rgba(0,0,0,0.15);z-index:9999;';\n"
        f"    document.getElementById('{container_id}').appendChild(widget);\n"
        "  })();\n"
        "</script>"
    )
