"""
Backend Clients

HTTP collaborators used on the client side of the app: the chat proxy, the video
suggestion proxy and the task automation proxy.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from learnverse_tutor.errors import ChatBackendError, TaskError, VideoSuggestionError
from learnverse_tutor.video_suggestions import Video, VideoSuggestions

logger = logging.getLogger(__name__)

INVALID_RESPONSE = "Invalid response format from server"


class _BackendClient:
    def __init__(self, base_url: str, http_client: Optional[httpx.AsyncClient] = None, timeout: Optional[float] = None):
        self.base_url = base_url.rstrip("/")
        self.http_client = http_client
        self.timeout = timeout

    async def _post(self, path: str, payload: Dict[str, Any]) -> httpx.Response:
        url = f"{self.base_url}{path}"
        if self.http_client is not None:
            return await self.http_client.post(url, json=payload)
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            return await client.post(url, json=payload)

    async def _get(self, path: str) -> httpx.Response:
        url = f"{self.base_url}{path}"
        if self.http_client is not None:
            return await self.http_client.get(url)
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            return await client.get(url)

    @staticmethod
    def _json(response: httpx.Response) -> Dict[str, Any]:
        try:
            data = response.json()
        except ValueError:
            return {}
        return data if isinstance(data, dict) else {}


class HttpChatBackend(_BackendClient):
    """POST /api/chat"""

    async def send(
        self,
        message: str,
        agent: str,
        history: List[Dict[str, str]],
        reference_files: Optional[List[str]] = None,
    ) -> str:
        """
        Send one chat turn.

        Args:
            message: User text
            agent: Persona id
            history: Role-tagged prior turns
            reference_files: Names of uploaded study files the agent should refer to

        Returns:
            Reply text

        Raises:
            ChatBackendError: transport failure, non-2xx status or malformed payload
        """
        payload: Dict[str, Any] = {
            "message": message,
            "agent": agent,
            "conversationHistory": history,
        }
        if reference_files:
            payload["referenceFiles"] = list(reference_files)
        try:
            response = await self._post("/api/chat", payload)
        except httpx.HTTPError as e:
            raise ChatBackendError("Failed to get response from server", details=str(e) or None) from e

        data = self._json(response)
        if not response.is_success:
            raise ChatBackendError(
                data.get("error") or "Failed to get response from server",
                details=data.get("details"),
                status_code=response.status_code,
            )
        if not data.get("success") or not data.get("response"):
            raise ChatBackendError(data.get("error") or INVALID_RESPONSE, details=data.get("details"))
        return data["response"]


class VideoSuggestionClient(_BackendClient):
    """POST /api/suggest-videos"""

    async def suggest(
        self,
        message: str,
        agent: str,
        history: List[Dict[str, str]],
        subject: Optional[str] = None,
    ) -> VideoSuggestions:
        payload: Dict[str, Any] = {
            "message": message,
            "conversationHistory": history,
            "agentType": agent,
        }
        if subject:
            payload["subject"] = subject
        try:
            response = await self._post("/api/suggest-videos", payload)
        except httpx.HTTPError as e:
            raise VideoSuggestionError(f"Failed to fetch videos: {e}") from e

        data = self._json(response)
        if not response.is_success:
            raise VideoSuggestionError(data.get("error") or f"HTTP error! status: {response.status_code}")
        if not data.get("success"):
            raise VideoSuggestionError(data.get("error") or "Failed to fetch videos")

        return VideoSuggestions(
            query=data.get("query", ""),
            original_message=data.get("originalMessage", message),
            extracted_keywords=data.get("extractedKeywords", ""),
            videos=[Video.from_dict(v) for v in data.get("videos", [])],
        )


class TaskClient(_BackendClient):
    """POST /api/tasks/perform and GET /api/tasks/status"""

    async def perform(self, input_text: str, **overrides: Any) -> Dict[str, Any]:
        """
        Run a task command.

        Args:
            input_text: Free-text command
            **overrides: Structured fields (taskType, grade, subject, year, website, customQuery)
        """
        payload = {"input": input_text, **{k: v for k, v in overrides.items() if v is not None}}
        try:
            response = await self._post("/api/tasks/perform", payload)
        except httpx.HTTPError as e:
            raise TaskError(f"Task request failed: {e}") from e

        data = self._json(response)
        if not response.is_success:
            raise TaskError(data.get("error") or f"HTTP error! status: {response.status_code}")
        return data

    async def status(self) -> Dict[str, Any]:
        try:
            response = await self._get("/api/tasks/status")
        except httpx.HTTPError as e:
            raise TaskError(f"Task status request failed: {e}") from e
        if not response.is_success:
            raise TaskError(f"HTTP error! status: {response.status_code}")
        return self._json(response)
