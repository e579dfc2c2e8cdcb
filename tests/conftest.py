"""
Shared fixtures for PediBrief tests.
"""

import json
import os

# Must be set before app.config is imported
os.environ["RATE_LIMIT_ENABLED"] = "false"

import pytest
from fastapi.testclient import TestClient

from app.main import app


SAMPLE_DISCHARGE_TEXT = (
    "Patient: Jane Doe  MRN 123456  DOB 01/02/2019\n"
    "Age: 5 years\n"
    "Diagnosis: Acute gastroenteritis with mild dehydration.\n"
    "Treated with IV fluids, tolerating oral intake at discharge.\n"
    "Medications on Discharge: Paracetamol 15 mg/kg every 6 hours as needed for fever.\n"
    "Return to ED if: unable to keep fluids down, no urine for 8 hours, lethargy.\n"
    "Avoid juice, soda and greasy food for 48 hours.\n"
    "Follow up with pediatrician in 2-3 days."
)


@pytest.fixture
def discharge_text() -> str:
    """A short pediatric discharge summary with identifiers."""
    return SAMPLE_DISCHARGE_TEXT


@pytest.fixture
def model_payload() -> dict:
    """A well-formed summary object as the model would return it."""
    return {
        "simpleExplanation": "Your child had a stomach bug and was a little dehydrated.",
        "whatToDo": ["Give small sips of fluids often", "Give paracetamol for fever"],
        "whatNotToDo": ["Avoid juice, soda and greasy food for 48 hours"],
        "redFlags": [
            "Your child cannot keep fluids down",
            "No pee for 8 hours",
            "Your child is very sleepy or hard to wake"
        ],
        "medications": [
            {"name": "Paracetamol", "dose": "15 mg/kg", "timing": "every 6 hours as needed for fever"}
        ],
        "followUp": ["See your pediatrician in 2-3 days"],
        "expectedCourse": "The discharge summary does not specify what to expect over the next few days.",
        "quizQuestions": [
            {
                "id": "rf-1",
                "question": "When should you bring your child back to the ER?",
                "options": ["Call the doctor", "Go to ER", "All of the above"],
                "correctOptionIndexes": [0, 1, 2],
                "category": "redFlag",
                "explanation": "Both are listed in the discharge summary."
            },
            {
                "question": "How often can paracetamol be given?",
                "options": ["Every 6 hours as needed", "Every hour", "Once a week"],
                "correctOptionIndexes": [0],
                "category": "medication",
                "weight": 40
            }
        ]
    }


@pytest.fixture
def model_text(model_payload) -> str:
    """Model output wrapped the way Gemini often wraps it."""
    return (
        "```json\n"
        + json.dumps(model_payload, indent=2)
        + "\n```\nThis summary only uses facts from the discharge text."
    )


@pytest.fixture
def client():
    """Create test client; dependency overrides are reset afterwards."""
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
