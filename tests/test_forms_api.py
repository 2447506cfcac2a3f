"""Tests for form endpoints with mocked database and gateway."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from formchat.api.deps import get_gateway
from formchat.core.errors import ProviderError
from formchat.core.llm import LLMResult
from formchat.core.schemas_forms import FormSummary
from formchat.core.schemas_responses import ResponseRecord
from formchat.main import app

from tests.fakes.fake_backend import make_form

FORM = make_form(
    [("What is your name?", "name"), ("What is your goal?", "goal")],
    output_prompt="Write a bio.",
    formid=7,
)


@pytest.fixture
def gateway():
    gateway = MagicMock()
    gateway.chat = AsyncMock(return_value=LLMResult(content="VALID", model="gpt-4o-mini"))
    app.dependency_overrides[get_gateway] = lambda: gateway
    yield gateway
    app.dependency_overrides.clear()


@pytest.fixture
def client():
    """Test client for the app."""
    return TestClient(app)


class TestGetForm:
    def test_returns_ordered_prompts(self, client):
        with patch("formchat.db.forms.get_form", return_value=FORM):
            response = client.get("/api/forms/7")

        assert response.status_code == 200
        data = response.json()
        assert data["title"] == "Test Form"
        assert [p["variable_name"] for p in data["prompts"]] == ["name", "goal"]
        assert [p["order"] for p in data["prompts"]] == [0, 1]

    def test_not_found(self, client):
        with patch("formchat.db.forms.get_form", return_value=None):
            response = client.get("/api/forms/99")

        assert response.status_code == 404


class TestValidate:
    def test_valid_answer_returns_null(self, client, gateway):
        with patch("formchat.db.forms.get_form", return_value=FORM):
            response = client.post(
                "/api/forms/7/validate", json={"promptIndex": 0, "answer": "Ada"}
            )

        assert response.status_code == 200
        assert response.json() == {"validation": None}

    def test_feedback_returned_verbatim(self, client, gateway):
        gateway.chat.return_value = LLMResult(content='Vague.\n1. "Ada Lovelace"', model="m")
        with patch("formchat.db.forms.get_form", return_value=FORM):
            response = client.post(
                "/api/forms/7/validate", json={"promptIndex": 0, "answer": "A"}
            )

        assert response.json() == {"validation": 'Vague.\n1. "Ada Lovelace"'}

    def test_request_criteria_override_prompt_criteria(self, client, gateway):
        with patch("formchat.db.forms.get_form", return_value=FORM):
            client.post(
                "/api/forms/7/validate",
                json={"promptIndex": 1, "answer": "x", "validationCriteria": "Be concrete"},
            )

        user_message = gateway.chat.await_args.args[0][1]["content"]
        assert "Validation Criteria: Be concrete" in user_message

    @pytest.mark.parametrize("body", [{"promptIndex": 0}, {"answer": "x"}, {"promptIndex": 0, "answer": ""}])
    def test_missing_fields(self, client, gateway, body):
        response = client.post("/api/forms/7/validate", json=body)
        assert response.status_code == 400

    def test_prompt_index_out_of_range(self, client, gateway):
        with patch("formchat.db.forms.get_form", return_value=FORM):
            response = client.post(
                "/api/forms/7/validate", json={"promptIndex": 5, "answer": "x"}
            )

        assert response.status_code == 404

    def test_validation_unavailable(self, client, gateway):
        gateway.chat.side_effect = ProviderError("down")
        with patch("formchat.db.forms.get_form", return_value=FORM):
            response = client.post(
                "/api/forms/7/validate", json={"promptIndex": 0, "answer": "x"}
            )

        assert response.status_code == 503


class TestOutput:
    def test_generates_output(self, client, gateway):
        gateway.chat.return_value = LLMResult(content="Ada is a mathematician.", model="m")
        with patch("formchat.db.forms.get_form", return_value=FORM):
            response = client.post(
                "/api/forms/7/output",
                json={"responses": [{"variable_name": "name", "response_text": "Ada"}]},
            )

        assert response.status_code == 200
        data = response.json()
        assert data["output"] == "Ada is a mathematician."
        assert data["answers"] == [
            {"variable_name": "output_prompt", "response_text": "Write a bio."},
            {"variable_name": "output", "response_text": "Ada is a mathematician."},
        ]

    def test_no_output_prompt(self, client, gateway):
        form = make_form([("Q?", "q")], formid=7)
        with patch("formchat.db.forms.get_form", return_value=form):
            response = client.post("/api/forms/7/output", json={"responses": []})

        assert response.status_code == 400
        gateway.chat.assert_not_awaited()

    def test_generation_failure(self, client, gateway):
        gateway.chat.side_effect = ProviderError("down")
        with patch("formchat.db.forms.get_form", return_value=FORM):
            response = client.post("/api/forms/7/output", json={"responses": []})

        assert response.status_code == 502


class TestGuidanceAndWelcome:
    def test_guidance_uses_prompt_by_id(self, client, gateway):
        gateway.chat.return_value = LLMResult(content="Add your surname.", model="m")
        with patch("formchat.db.forms.get_form", return_value=FORM):
            response = client.post(
                "/api/forms/7/prompts/1/guidance",
                json={"answer": "Ada", "previousQA": []},
            )

        assert response.status_code == 200
        assert response.json() == {"guidance": "Add your surname."}

    def test_guidance_unknown_prompt(self, client, gateway):
        with patch("formchat.db.forms.get_form", return_value=FORM):
            response = client.post("/api/forms/7/prompts/99/guidance", json={"answer": "x"})

        assert response.status_code == 404

    def test_welcome(self, client, gateway):
        gateway.chat.return_value = LLMResult(content="Welcome!", model="m")
        with patch("formchat.db.forms.get_form", return_value=FORM):
            response = client.post("/api/forms/7/welcome")

        assert response.json() == {"message": "Welcome!"}

    def test_conversational_prompt(self, client, gateway):
        gateway.chat.return_value = LLMResult(content="So, what should I call you?", model="m")
        with patch("formchat.db.forms.get_form", return_value=FORM):
            response = client.post("/api/forms/7/prompts/1/conversational")

        assert response.json() == {"message": "So, what should I call you?"}


class TestAdminCrud:
    def test_requires_auth(self, client):
        assert client.get("/api/forms").status_code == 401

    def test_list_forms(self, client, admin_headers):
        summary = FormSummary(formid=7, title="T", response_count=3, question_count=2)
        with patch("formchat.db.forms.list_forms", return_value=[summary]):
            response = client.get("/api/forms", headers=admin_headers)

        assert response.status_code == 200
        assert response.json()[0]["response_count"] == 3

    def test_create_form(self, client, admin_headers):
        body = {
            "title": "Survey",
            "prompts": [{"question_text": "Name?", "variable_name": "name"}],
        }
        with patch("formchat.db.forms.create_form", return_value=12) as mock_create:
            response = client.post("/api/forms", json=body, headers=admin_headers)

        assert response.status_code == 201
        assert response.json() == {"formId": 12}
        assert mock_create.call_args.args[0].prompts[0].variable_name == "name"

    def test_create_form_blank_title(self, client, admin_headers):
        response = client.post("/api/forms", json={"title": "  "}, headers=admin_headers)
        assert response.status_code == 400

    def test_update_missing_form(self, client, admin_headers):
        with patch("formchat.db.forms.update_form", side_effect=ValueError("Form not found: 9")):
            response = client.put("/api/forms/9", json={"title": "T"}, headers=admin_headers)

        assert response.status_code == 404

    def test_deactivate(self, client, admin_headers):
        with patch("formchat.db.forms.deactivate_form") as mock_deactivate:
            response = client.patch("/api/forms/7/deactivate", headers=admin_headers)

        assert response.status_code == 200
        mock_deactivate.assert_called_once_with(7)

    def test_delete_unknown(self, client, admin_headers):
        with patch("formchat.db.forms.delete_form", return_value=False):
            response = client.delete("/api/forms/9", headers=admin_headers)

        assert response.status_code == 404

    def test_export_csv(self, client, admin_headers):
        record = ResponseRecord(
            responseid=3,
            formid=7,
            responses={"answers": [{"variable_name": "name", "response_text": "Ada"}]},
        )
        with (
            patch("formchat.db.forms.get_form", return_value=FORM),
            patch("formchat.db.responses.list_responses", return_value=[record]) as mock_list,
        ):
            response = client.get("/api/forms/7/export?responseIds=3,4", headers=admin_headers)

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        lines = response.text.splitlines()
        assert lines[0] == "Response_ID,Submission_Date,name,goal,output"
        assert lines[1] == "3,,Ada,,"
        mock_list.assert_called_once_with(7, [3, 4])
