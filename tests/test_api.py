"""
Tests for API endpoints.
"""

import google.auth.exceptions
import httpx
import pytest

from app.config import Settings
from app.core.exceptions import CompletionHTTPError, EmailDeliveryError
from app.core.llm_engine import CompletionClient
from app.main import app
from app.services.discharge_processor import DischargeProcessor, get_discharge_processor
from app.services import email_notifier
from app.services.email_notifier import DoctorNotifier, GmailSender, get_doctor_notifier
from app.services import report_generator
from app.services.grader import AnswerGrader, get_answer_grader
from tests.fakes import FakeCompletionClient, FakeSender


def use_completion(client: FakeCompletionClient):
    app.dependency_overrides[get_discharge_processor] = lambda: DischargeProcessor(client=client)
    app.dependency_overrides[get_answer_grader] = lambda: AnswerGrader(client=client)


def use_sender(sender: FakeSender):
    app.dependency_overrides[get_doctor_notifier] = lambda: DoctorNotifier(sender=sender)


def undecodable_gemini() -> CompletionClient:
    """Real client whose upstream answers 200 with bytes that are not text."""
    return CompletionClient(
        cfg=Settings(gemini_api_key="test-key"),
        transport=httpx.MockTransport(
            lambda request: httpx.Response(200, content=b"\xff\xfe\xfa garbage")
        ),
    )


@pytest.fixture
def summary_body(model_payload):
    body = dict(model_payload)
    body.pop("quizQuestions")
    return body


class TestHealthEndpoint:
    """Test health check endpoint."""

    def test_health_returns_200(self, client):
        """Health endpoint should return 200."""
        response = client.get("/health")
        assert response.status_code == 200

    def test_health_response_structure(self, client):
        """Health response should have correct structure."""
        data = client.get("/health").json()

        assert data["status"] == "healthy"
        assert "version" in data
        assert "timestamp" in data
        assert "llmConfigured" in data
        assert "emailConfigured" in data


class TestSummarize:
    """Test discharge summary simplification."""

    def test_summary_returned(self, client, model_text, discharge_text):
        """Fenced model output becomes a camelCase summary."""
        fake = FakeCompletionClient(text=model_text)
        use_completion(fake)

        response = client.post("/summarize", json={"dischargeText": discharge_text})

        assert response.status_code == 200
        data = response.json()
        assert data["redFlags"][1] == "No pee for 8 hours"
        assert data["medications"][0] == {
            "name": "Paracetamol",
            "dose": "15 mg/kg",
            "timing": "every 6 hours as needed for fever",
        }
        first = data["quizQuestions"][0]
        assert first["options"] == ["Call the doctor", "Go to ER"]
        assert first["correctOptionIndexes"] == [0, 1]
        assert discharge_text in fake.calls[0][0]

    def test_blank_text_rejected(self, client):
        """Whitespace-only text is a 400 without a model call."""
        fake = FakeCompletionClient(text="{}")
        use_completion(fake)

        response = client.post("/summarize", json={"dischargeText": "   \n "})

        assert response.status_code == 400
        assert fake.calls == []

    def test_missing_field(self, client):
        """A body without dischargeText fails validation."""
        response = client.post("/summarize", json={})
        assert response.status_code == 422

    def test_model_failure_is_502(self, client, discharge_text):
        use_completion(FakeCompletionClient(error=CompletionHTTPError(500, "internal")))

        response = client.post("/summarize", json={"dischargeText": discharge_text})

        assert response.status_code == 502
        assert response.json()["detail"].startswith("Failed to process discharge summary:")

    def test_no_json_is_502(self, client, discharge_text):
        use_completion(FakeCompletionClient(text="Sorry, I cannot help with that."))

        response = client.post("/summarize", json={"dischargeText": discharge_text})

        assert response.status_code == 502
        assert "No JSON object found" in response.json()["detail"]

    def test_unconfigured_is_503(self, client, discharge_text):
        unconfigured = CompletionClient(cfg=Settings(gemini_api_key=""))
        app.dependency_overrides[get_discharge_processor] = (
            lambda: DischargeProcessor(client=unconfigured)
        )

        response = client.post("/summarize", json={"dischargeText": discharge_text})

        assert response.status_code == 503

    def test_undecodable_upstream_is_502(self, client, discharge_text):
        """A garbled Gemini body is an upstream failure, not a bad request."""
        gemini = undecodable_gemini()
        app.dependency_overrides[get_discharge_processor] = lambda: DischargeProcessor(client=gemini)

        response = client.post("/summarize", json={"dischargeText": discharge_text})

        assert response.status_code == 502
        assert "Could not extract response text" in response.json()["detail"]


class TestQuizEndpoints:
    """Test quiz scoring and grading endpoints."""

    def test_score_quiz(self, client):
        question = {
            "id": "q1",
            "question": "When do you go back to the ER?",
            "options": ["No pee for 8 hours", "Fever breaks"],
            "correctOptionIndexes": [0],
            "category": "redFlag",
            "weight": 30,
        }
        response = client.post("/quiz/score", json={
            "questions": [question],
            "answers": [{"questionId": "q1", "selectedOptionIndexes": [0]}],
        })

        assert response.status_code == 200
        data = response.json()
        assert data["score"] == 100
        assert data["passed"] is True
        assert data["answers"][0]["isCorrect"] is True

    def test_recall_questions(self, client, summary_body):
        response = client.post("/quiz/recall-questions", json=summary_body)

        assert response.status_code == 200
        ids = [q["id"] for q in response.json()]
        assert ids == ["redFlag1", "med1", "care1", "avoid1", "followUp1"]

    def test_grade_answer_fallback(self, client):
        """A failing model still yields a graded answer."""
        use_completion(FakeCompletionClient(error=CompletionHTTPError(503, "busy")))

        response = client.post("/quiz/grade-answer", json={
            "question": "What should your child avoid?",
            "correctAnswer": "avoid juice; avoid soda; avoid greasy food",
            "userAnswer": "no juice or soda",
        })

        assert response.status_code == 200
        data = response.json()
        assert data["isCorrect"] is False
        assert data["source"] == "fallback"

    def test_grade_answer_undecodable_upstream(self, client):
        """A garbled Gemini body still yields a keyword-graded answer."""
        gemini = undecodable_gemini()
        app.dependency_overrides[get_answer_grader] = lambda: AnswerGrader(client=gemini)

        response = client.post("/quiz/grade-answer", json={
            "question": "What should your child avoid?",
            "correctAnswer": "avoid juice; avoid soda; avoid greasy food",
            "userAnswer": "We will avoid juice, soda and greasy food",
        })

        assert response.status_code == 200
        assert response.json()["source"] == "fallback"
        assert response.json()["isCorrect"] is True

    def test_recall_score(self, client):
        questions = [
            {"id": "redFlag1", "question": "Q1", "correctAnswer": "A", "weight": 30, "category": "redFlag"},
            {"id": "followUp1", "question": "Q2", "correctAnswer": "B", "weight": 10, "category": "followUp"},
        ]
        response = client.post("/quiz/recall-score", json={
            "questions": questions,
            "results": {"redFlag1": {"isCorrect": True, "feedback": "Good"}},
        })

        assert response.status_code == 200
        assert response.json() == {"score": 75, "passed": True}


class TestExportPdf:
    """Test care summary export."""

    def test_export(self, client, summary_body):
        response = client.post("/export-pdf", json={"summary": summary_body, "quizScore": 85})

        assert response.status_code == 200
        assert response.headers["content-type"].split(";")[0] in ("application/pdf", "text/html")
        assert response.headers["content-disposition"].startswith("attachment; filename=")

    def test_score_out_of_range(self, client, summary_body):
        response = client.post("/export-pdf", json={"summary": summary_body, "quizScore": 150})
        assert response.status_code == 422

    def test_fractional_score_rounded(self, client, summary_body, monkeypatch):
        """A fractional quizScore is rounded for the badge."""
        monkeypatch.setattr(report_generator, "WEASYPRINT_AVAILABLE", False)

        response = client.post("/export-pdf", json={"summary": summary_body, "quizScore": 72.4})

        assert response.status_code == 200
        assert "Quiz Score: 72/100" in response.text


class TestDoctorEmail:
    """Test clinician notification endpoint."""

    @pytest.fixture
    def email_body(self):
        return {
            "doctorEmail": "dr@example.org",
            "patientId": "PT-0042",
            "quizScore": 80,
            "quizData": [{
                "question": "When do you go back to the ER?",
                "options": ["No pee for 8 hours", "Fever breaks"],
                "correctOptions": [0],
                "patientSelected": [0],
                "isCorrect": True,
            }],
        }

    def test_get_not_allowed(self, client):
        assert client.get("/send-doctor-email").status_code == 405

    def test_invalid_email(self, client, email_body):
        use_sender(FakeSender())
        email_body["doctorEmail"] = "not-an-email"

        response = client.post("/send-doctor-email", json=email_body)

        assert response.status_code == 400
        assert response.json()["detail"] == "Valid doctor email is required"

    def test_missing_patient_id(self, client, email_body):
        use_sender(FakeSender())
        del email_body["patientId"]

        response = client.post("/send-doctor-email", json=email_body)

        assert response.status_code == 400
        assert response.json()["detail"] == "Patient ID is required"

    def test_unconfigured(self, client, email_body):
        use_sender(FakeSender(configured=False))

        response = client.post("/send-doctor-email", json=email_body)

        assert response.status_code == 500
        assert "not configured" in response.json()["detail"]

    def test_sent(self, client, email_body):
        sender = FakeSender()
        use_sender(sender)

        response = client.post("/send-doctor-email", json=email_body)

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "message": "Email sent successfully",
            "patientId": "PT-0042",
            "emailId": "msg-123",
        }
        assert sender.sent[0][0] == "dr@example.org"

    def test_delivery_failure(self, client, email_body):
        use_sender(FakeSender(error=EmailDeliveryError("Gmail API error: 403")))

        response = client.post("/send-doctor-email", json=email_body)

        assert response.status_code == 500
        assert response.json()["detail"] == "Gmail API error: 403"

    def test_token_server_unreachable(self, client, email_body, monkeypatch):
        """A network failure during token refresh reports its cause."""
        def unreachable(self, request):
            raise google.auth.exceptions.TransportError("Name or service not known")

        monkeypatch.setattr(email_notifier.Credentials, "refresh", unreachable)
        sender = GmailSender(Settings(
            gmail_client_id="client-id",
            gmail_client_secret="client-secret",
            gmail_refresh_token="refresh-token",
            gmail_user_email="clinic@example.org",
        ))
        app.dependency_overrides[get_doctor_notifier] = lambda: DoctorNotifier(sender=sender)

        response = client.post("/send-doctor-email", json=email_body)

        assert response.status_code == 500
        assert "Name or service not known" in response.json()["detail"]

    def test_fractional_score_rounded(self, client, email_body):
        """A fractional quizScore is accepted and rounded."""
        sender = FakeSender()
        use_sender(sender)
        email_body["quizScore"] = 87.6

        response = client.post("/send-doctor-email", json=email_body)

        assert response.status_code == 200
        assert "88/100" in sender.sent[0][2]
