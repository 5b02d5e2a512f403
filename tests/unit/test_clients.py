"""
Unit Tests for the backend HTTP clients
"""

import json
import httpx
import pytest
import sys
import os

# Add project root to path
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), "../.."))
sys.path.insert(0, os.path.join(project_root, "learnverse_tutor", "src"))

from learnverse_tutor.clients import HttpChatBackend, TaskClient, VideoSuggestionClient
from learnverse_tutor.errors import ChatBackendError, TaskError, VideoSuggestionError

BASE_URL = "http://backend.test"


def client_for(handler):
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestHttpChatBackend:

    @pytest.mark.asyncio
    async def test_send(self):
        seen = []

        def handler(request):
            seen.append(json.loads(request.content))
            return httpx.Response(200, json={"success": True, "response": "Hi!"})

        async with client_for(handler) as http:
            reply = await HttpChatBackend(BASE_URL, http_client=http).send(
                "hello", "tutor", [{"role": "assistant", "content": "Welcome"}]
            )

        assert reply == "Hi!"
        assert seen[0] == {
            "message": "hello",
            "agent": "tutor",
            "conversationHistory": [{"role": "assistant", "content": "Welcome"}],
        }

    @pytest.mark.asyncio
    async def test_send_reference_files(self):
        seen = []

        def handler(request):
            seen.append(json.loads(request.content))
            return httpx.Response(200, json={"success": True, "response": "Using your notes."})

        async with client_for(handler) as http:
            await HttpChatBackend(BASE_URL, http_client=http).send(
                "summarize chapter 2", "study", [], ["cells.md", "past-paper.pdf"]
            )

        assert seen[0]["referenceFiles"] == ["cells.md", "past-paper.pdf"]

    @pytest.mark.asyncio
    async def test_error_status_uses_details(self):
        def handler(request):
            return httpx.Response(500, json={"error": "Failed to process chat message", "details": "upstream down"})

        async with client_for(handler) as http:
            with pytest.raises(ChatBackendError) as exc_info:
                await HttpChatBackend(BASE_URL, http_client=http).send("hello", "tutor", [])

        assert exc_info.value.status_code == 500
        assert exc_info.value.user_message == "upstream down"

    @pytest.mark.asyncio
    async def test_success_false_without_response(self):
        def handler(request):
            return httpx.Response(200, json={"success": False})

        async with client_for(handler) as http:
            with pytest.raises(ChatBackendError, match="Invalid response format"):
                await HttpChatBackend(BASE_URL, http_client=http).send("hello", "tutor", [])

    @pytest.mark.asyncio
    async def test_transport_failure(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        async with client_for(handler) as http:
            with pytest.raises(ChatBackendError) as exc_info:
                await HttpChatBackend(BASE_URL, http_client=http).send("hello", "tutor", [])

        assert "connection refused" in exc_info.value.user_message


class TestVideoSuggestionClient:

    @pytest.mark.asyncio
    async def test_suggest(self):
        seen = []

        def handler(request):
            seen.append(json.loads(request.content))
            return httpx.Response(200, json={
                "success": True,
                "query": "algebra basics education explained tutorial",
                "originalMessage": "help with algebra",
                "extractedKeywords": "algebra basics education explained",
                "videos": [{"id": "v1", "title": "Algebra", "duration": "PT5M9S", "viewCount": "1200"}],
            })

        async with client_for(handler) as http:
            result = await VideoSuggestionClient(BASE_URL, http_client=http).suggest(
                "help with algebra", "tutor", [{"sender": "user", "content": "help with algebra"}], "mathematics"
            )

        assert seen[0]["agentType"] == "tutor"
        assert seen[0]["subject"] == "mathematics"
        assert result.videos[0].display_duration == "5:09"
        assert result.videos[0].display_views == "1.2K"

    @pytest.mark.asyncio
    async def test_error(self):
        def handler(request):
            return httpx.Response(500, json={"error": "Failed to fetch video suggestions"})

        async with client_for(handler) as http:
            with pytest.raises(VideoSuggestionError, match="Failed to fetch video suggestions"):
                await VideoSuggestionClient(BASE_URL, http_client=http).suggest("x", "tutor", [])


class TestTaskClient:

    @pytest.mark.asyncio
    async def test_perform_drops_empty_overrides(self):
        seen = []

        def handler(request):
            seen.append(json.loads(request.content))
            return httpx.Response(200, json={"success": True, "taskType": "exam_papers"})

        async with client_for(handler) as http:
            result = await TaskClient(BASE_URL, http_client=http).perform(
                "grade 12 maths", taskType="exam_papers", grade="12", year=None
            )

        assert result["taskType"] == "exam_papers"
        assert seen[0] == {"input": "grade 12 maths", "taskType": "exam_papers", "grade": "12"}

    @pytest.mark.asyncio
    async def test_perform_error(self):
        def handler(request):
            return httpx.Response(400, json={"error": "No input provided"})

        async with client_for(handler) as http:
            with pytest.raises(TaskError, match="No input provided"):
                await TaskClient(BASE_URL, http_client=http).perform("")
