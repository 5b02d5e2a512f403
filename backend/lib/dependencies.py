"""
Service singletons for the API routes.

Each getter builds its service on first use and is injected with FastAPI's
`Depends`, so tests can swap any of them through `app.dependency_overrides`.
"""

from typing import Optional

from learnverse_tutor.automation import AutomationService
from learnverse_tutor.chat_service import ChatService
from learnverse_tutor.config import Settings
from learnverse_tutor.llm_client import LLMClient
from learnverse_tutor.quiz import QuizGenerator
from learnverse_tutor.summaries import SummaryGenerator
from learnverse_tutor.video_suggestions import VideoSuggestionService, YouTubeClient

_settings: Optional[Settings] = None
_llm_client: Optional[LLMClient] = None
_chat_service: Optional[ChatService] = None
_video_service: Optional[VideoSuggestionService] = None
_automation_service: Optional[AutomationService] = None
_quiz_generator: Optional[QuizGenerator] = None
_summary_generator: Optional[SummaryGenerator] = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings.from_env()
    return _settings


def get_llm_client() -> LLMClient:
    """Shared Groq client; raises ConfigurationError without GROQ_API_KEY."""
    global _llm_client
    if _llm_client is None:
        _llm_client = LLMClient(get_settings())
    return _llm_client


def get_chat_service() -> ChatService:
    global _chat_service
    if _chat_service is None:
        _chat_service = ChatService(get_llm_client())
    return _chat_service


def get_video_service() -> VideoSuggestionService:
    global _video_service
    if _video_service is None:
        settings = get_settings()
        _video_service = VideoSuggestionService(get_llm_client(), YouTubeClient(settings))
    return _video_service


def get_automation_service() -> AutomationService:
    global _automation_service
    if _automation_service is None:
        _automation_service = AutomationService()
    return _automation_service


def get_quiz_generator() -> QuizGenerator:
    global _quiz_generator
    if _quiz_generator is None:
        _quiz_generator = QuizGenerator(get_llm_client())
    return _quiz_generator


def get_summary_generator() -> SummaryGenerator:
    global _summary_generator
    if _summary_generator is None:
        _summary_generator = SummaryGenerator(get_chat_service())
    return _summary_generator


async def close_services() -> None:
    """Release the shared HTTP client and drop every service built on it."""
    global _llm_client, _chat_service, _video_service, _quiz_generator, _summary_generator
    if _llm_client is not None:
        await _llm_client.close()
    _llm_client = None
    _chat_service = None
    _video_service = None
    _quiz_generator = None
    _summary_generator = None
