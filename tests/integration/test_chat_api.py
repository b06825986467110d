"""
Integration tests for Chat API endpoints

Tests:
- Send a message and receive the reply with history
- LLM outage: 503 and nothing stored
- History retrieval and clearing
"""

import pytest
from uuid import uuid4

from docshelf.core.exceptions import LLMServiceError


@pytest.mark.integration
class TestChatAPI:
    """Integration tests for Chat API"""

    @pytest.fixture
    def document(self, make_document, db_session):
        doc = make_document("manual.pdf")
        doc.extracted_text = "Press the red button to start. " * 5
        doc.has_text = True
        db_session.commit()
        return doc

    def test_send_message(self, client, llm_service, document):
        llm_service.complete.return_value = "Press the red button."

        response = client.post(f"/api/v1/chat/{document.id}", json={"message": "How do I start?", "page_number": 2})

        assert response.status_code == 200
        body = response.json()
        assert body["reply"] == "Press the red button."
        assert [m["role"] for m in body["messages"]] == ["user", "assistant"]
        system_prompt = llm_service.complete.call_args.args[0][0]["content"]
        assert "manual.pdf" in system_prompt
        assert "red button" in system_prompt

    def test_llm_outage_is_503_and_not_saved(self, client, llm_service, document):
        llm_service.complete.side_effect = LLMServiceError("AI service is temporarily unavailable")

        response = client.post(f"/api/v1/chat/{document.id}", json={"message": "Hello?"})

        assert response.status_code == 503
        assert response.json()["error"] == "llm_unavailable"
        assert client.get(f"/api/v1/chat/{document.id}").json()["messages"] == []

    def test_history_and_clear(self, client, document):
        client.post(f"/api/v1/chat/{document.id}", json={"message": "One"})
        client.post(f"/api/v1/chat/{document.id}", json={"message": "Two"})

        history = client.get(f"/api/v1/chat/{document.id}").json()["messages"]
        assert [m["content"] for m in history if m["role"] == "user"] == ["One", "Two"]
        assert len(history) == 4

        cleared = client.delete(f"/api/v1/chat/{document.id}")
        assert cleared.json()["messages"] == []
        assert client.get(f"/api/v1/chat/{document.id}").json()["messages"] == []

    def test_empty_message_is_rejected(self, client, document):
        assert client.post(f"/api/v1/chat/{document.id}", json={"message": ""}).status_code == 422

    def test_unknown_document(self, client):
        assert client.post(f"/api/v1/chat/{uuid4()}", json={"message": "hi"}).status_code == 404
