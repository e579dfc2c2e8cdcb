"""
Clinician notification for PediBrief.

Formats quiz results as an HTML email and sends it through the Gmail
API with OAuth2 user credentials (client id, secret, refresh token).
Only the de-identified patient identifier supplied by the clinician is
included; no PHI.
"""

import base64
from datetime import datetime
from email.mime.text import MIMEText
from typing import Optional, Sequence

import google.auth.exceptions
import httplib2
from google.auth.transport.requests import Request as GoogleAuthRequest
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from jinja2 import Environment

from app.config import Settings, settings
from app.core.exceptions import ConfigurationError, EmailDeliveryError
from app.models.schemas import QuizEmailItem
from app.utils.logger import get_logger

logger = get_logger("email_notifier")

GMAIL_SEND_SCOPE = "https://www.googleapis.com/auth/gmail.send"

PHI_NOTICE = (
    "This is a deidentified patient identifier. "
    "No protected health information (PHI) is included in this email."
)

EMAIL_TEMPLATE = """<!DOCTYPE html>
<html>
  <head>
    <meta charset="utf-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
  </head>
  <body style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, Arial, sans-serif; line-height: 1.6; color: #1f2937; max-width: 600px; margin: 0 auto; padding: 20px;">
    <div style="background-color: #2d7a7a; color: white; padding: 20px; border-radius: 8px 8px 0 0; text-align: center;">
      <h1 style="margin: 0; font-size: 24px;">PediBrief Quiz Results</h1>
    </div>

    <div style="background-color: white; padding: 30px; border: 1px solid #e5e7eb; border-top: none; border-radius: 0 0 8px 8px;">
      <div style="margin-bottom: 25px; padding: 15px; background-color: #f0fdf4; border-radius: 6px; border-left: 4px solid #22c55e;">
        <p style="margin: 5px 0;"><strong>Patient Identifier:</strong> {{ patient_id }}</p>
        <p style="margin: 5px 0;"><strong>Quiz Score:</strong> <span style="font-size: 20px; font-weight: bold; color: #22c55e;">{{ quiz_score }}/100</span></p>
        <p style="margin: 5px 0;"><strong>Date:</strong> {{ date }}</p>
      </div>

      <h2 style="color: #1f2937; border-bottom: 2px solid #2d7a7a; padding-bottom: 10px;">Quiz Questions and Answers</h2>

      {% for item in items %}
      <div style="margin-bottom: 30px; padding: 20px; background-color: #f9fafb; border-radius: 8px; border-left: 4px solid {{ '#22c55e' if item.is_correct else '#ef4444' }};">
        <h3 style="margin-top: 0; color: #1f2937;">Question {{ loop.index }}: {{ item.question }}</h3>
        <div style="margin: 15px 0;">
          <strong>Options:</strong>
          <ul style="margin: 5px 0; padding-left: 20px;">
            {% for option in item.options %}
            <li style="padding: 5px; margin: 3px 0; {{ option.style }}">{{ option.text }}</li>
            {% endfor %}
          </ul>
        </div>
        <div style="margin: 10px 0;">
          <strong>{{ '✅' if item.is_correct else '❌' }} Patient Answer:</strong> {{ item.selected }}
          <span style="color: {{ '#22c55e' if item.is_correct else '#ef4444' }}; font-weight: bold;">({{ 'Correct' if item.is_correct else 'Incorrect' }})</span>
        </div>
        <div style="margin: 10px 0;">
          <strong>Correct Answer:</strong> {{ item.correct }}
        </div>
        {% if item.explanation %}
        <div style="margin: 10px 0; padding: 10px; background-color: #eff6ff; border-radius: 4px;"><strong>Explanation:</strong> {{ item.explanation }}</div>
        {% endif %}
      </div>
      {% endfor %}

      <div style="margin-top: 30px; padding: 15px; background-color: #fef3c7; border-radius: 6px; border-left: 4px solid #f59e0b;">
        <p style="margin: 0;"><strong>Note:</strong> {{ phi_notice }}</p>
      </div>

      <div style="margin-top: 30px; padding-top: 20px; border-top: 1px solid #e5e7eb; text-align: center; color: #6b7280; font-size: 12px;">
        <p>This email was automatically generated by PediBrief.</p>
        <p>For questions or concerns, please contact the patient's family directly.</p>
      </div>
    </div>
  </body>
</html>
"""

_env = Environment(autoescape=True)
_template = _env.from_string(EMAIL_TEMPLATE)


def _option_style(is_correct: bool, is_selected: bool) -> str:
    if is_correct and is_selected:
        return "background-color: #d1fae5; font-weight: bold;"
    if is_correct:
        return "background-color: #fef3c7;"
    if is_selected:
        return "background-color: #fee2e2;"
    return ""


def _option_texts(options: Sequence[str], indexes: Sequence[int]) -> list:
    return [options[i] for i in indexes if 0 <= i < len(options)]


def _item_context(item: QuizEmailItem) -> dict:
    return {
        "question": item.question,
        "is_correct": item.is_correct,
        "explanation": item.explanation,
        "options": [
            {
                "text": option,
                "style": _option_style(
                    index in item.correct_options,
                    index in item.patient_selected
                ),
            }
            for index, option in enumerate(item.options)
        ],
        "selected": ", ".join(_option_texts(item.options, item.patient_selected)) or "None selected",
        "correct": ", ".join(_option_texts(item.options, item.correct_options)),
    }


def render_quiz_email(
    patient_id: str,
    quiz_score: int,
    quiz_data: Sequence[QuizEmailItem],
    sent_at: Optional[datetime] = None
) -> str:
    """
    Render the quiz results email.

    Args:
        patient_id: De-identified patient identifier
        quiz_score: Score on a 0-100 scale
        quiz_data: Per-question results
        sent_at: Timestamp to show (defaults to now)

    Returns:
        HTML document
    """
    sent_at = sent_at or datetime.now()
    return _template.render(
        patient_id=patient_id,
        quiz_score=quiz_score,
        date=sent_at.strftime("%Y-%m-%d %H:%M"),
        items=[_item_context(item) for item in quiz_data],
        phi_notice=PHI_NOTICE,
    )


def email_subject(patient_id: str) -> str:
    return f"PediBrief Quiz Results - Patient ID: {patient_id}"


def build_raw_message(to: str, sender: str, subject: str, html_body: str) -> str:
    """RFC 2822 message, base64url-encoded without padding as Gmail expects."""
    message = MIMEText(html_body, "html", "utf-8")
    message["To"] = to
    message["From"] = sender
    message["Subject"] = subject
    return base64.urlsafe_b64encode(message.as_bytes()).decode("ascii").rstrip("=")


class GmailSender:
    """Sends HTML mail through ``users.messages.send``."""

    def __init__(self, cfg: Settings = settings):
        self.cfg = cfg

    def is_configured(self) -> bool:
        return self.cfg.gmail_configured

    def _credentials(self) -> Credentials:
        if not self.cfg.gmail_configured:
            raise ConfigurationError(
                "Email service is not configured. Please set Gmail OAuth2 credentials."
            )

        credentials = Credentials(
            token=None,
            refresh_token=self.cfg.gmail_refresh_token,
            client_id=self.cfg.gmail_client_id,
            client_secret=self.cfg.gmail_client_secret,
            token_uri=self.cfg.gmail_token_uri,
            scopes=[GMAIL_SEND_SCOPE],
        )
        try:
            credentials.refresh(GoogleAuthRequest())
        except google.auth.exceptions.RefreshError as e:
            raise EmailDeliveryError(f"Could not refresh Gmail access token: {e}") from e
        except google.auth.exceptions.TransportError as e:
            raise EmailDeliveryError(f"Could not reach Google OAuth2 server: {e}") from e
        return credentials

    def send(self, to: str, subject: str, html_body: str) -> str:
        """
        Send one message.

        Returns:
            Gmail message id, or "unknown" if the API returned none

        Raises:
            ConfigurationError: credentials or sender address missing
            EmailDeliveryError: token refresh or send failed
        """
        if not self.cfg.gmail_user_email:
            raise ConfigurationError("GMAIL_USER_EMAIL is not set")

        credentials = self._credentials()
        raw = build_raw_message(to, self.cfg.gmail_user_email, subject, html_body)

        try:
            gmail = build("gmail", "v1", credentials=credentials, cache_discovery=False)
            response = gmail.users().messages().send(
                userId="me",
                body={"raw": raw}
            ).execute()
        except HttpError as e:
            logger.error("Gmail API error", status=getattr(e.resp, "status", None))
            raise EmailDeliveryError(f"Gmail API error: {e}") from e
        except (httplib2.HttpLib2Error, OSError) as e:
            logger.error("Gmail transport error", error_type=type(e).__name__)
            raise EmailDeliveryError(f"Failed to send email: {e}") from e

        return response.get("id") or "unknown"


class DoctorNotifier:
    """Emails quiz results to the clinician."""

    def __init__(self, sender: Optional[GmailSender] = None):
        self.sender = sender or GmailSender()

    def notify(
        self,
        doctor_email: str,
        patient_id: str,
        quiz_score: int,
        quiz_data: Sequence[QuizEmailItem]
    ) -> str:
        """Render and send the results email; returns the message id."""
        html_body = render_quiz_email(patient_id, quiz_score, quiz_data)
        email_id = self.sender.send(doctor_email, email_subject(patient_id), html_body)

        logger.info(
            "Quiz results emailed",
            email_id=email_id,
            questions=len(quiz_data),
            quiz_score=quiz_score
        )
        return email_id


# Lazy-loaded singleton
_notifier: Optional[DoctorNotifier] = None


def get_doctor_notifier() -> DoctorNotifier:
    """Get or create doctor notifier singleton."""
    global _notifier
    if _notifier is None:
        _notifier = DoctorNotifier()
    return _notifier
