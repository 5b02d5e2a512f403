"""
FastAPI Backend for LearnVerse Tutor

Provides REST API endpoints for:
- Chat with the four agent personas (Groq-hosted LLM)
- YouTube video suggestions for the conversation
- Task automation commands (mock browser automation)
- Quiz and summary generation from uploaded study materials
"""

from fastapi import FastAPI, Depends, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List, Dict
import os
import sys
import time
import logging
import signal

from lib.logger import setup_logging, get_logger

setup_logging(level=logging.INFO, use_colors=True)

logger = get_logger("backend.main")

# Add the learnverse_tutor package to Python path
backend_dir = os.path.dirname(os.path.abspath(__file__))
project_root = os.path.dirname(backend_dir)

package_src = os.path.join(project_root, 'learnverse_tutor', 'src')
if os.path.exists(package_src) and package_src not in sys.path:
    sys.path.insert(0, package_src)

from learnverse_tutor.agents import DEFAULT_AGENT
from learnverse_tutor.chat_service import ChatService
from learnverse_tutor.errors import ConfigurationError, StudyFileError, UpstreamAuthError
from learnverse_tutor.messages import role_for_sender
from learnverse_tutor.quiz import QuizGenerator
from learnverse_tutor.study_files import StudyFile
from learnverse_tutor.summaries import SummaryGenerator
from learnverse_tutor.video_suggestions import VideoSuggestionService

from lib.dependencies import (
    close_services,
    get_chat_service,
    get_quiz_generator,
    get_settings,
    get_summary_generator,
    get_video_service,
)
from routes import task_router

settings = get_settings()

app = FastAPI(
    title="LearnVerse Tutor API",
    description="Chat, video suggestion, task automation and study tools for LearnVerse",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials="*" not in settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(task_router)


class InvalidRequest(Exception):
    """Request body rejected before any service is built; answered with 400."""

    def __init__(self, error: str):
        super().__init__(error)
        self.error = error


@app.exception_handler(InvalidRequest)
async def invalid_request_handler(request: Request, exc: InvalidRequest):
    logger.warning(f"Rejected request to {request.url.path}: {exc.error}")
    return JSONResponse(status_code=400, content={"error": exc.error})


@app.exception_handler(ConfigurationError)
async def configuration_error_handler(request: Request, exc: ConfigurationError):
    logger.error("Server configuration error", error=exc)
    return JSONResponse(status_code=500, content={
        "error": "Server configuration error",
        "details": "API key not configured",
    })


# ==================== Pydantic Models ====================

class HistoryItem(BaseModel):
    """A prior turn, tagged either with a chat `role` or a UI `sender`."""
    content: str = ""
    role: Optional[str] = None
    sender: Optional[str] = None

    def to_turn(self) -> Dict[str, str]:
        role = self.role if self.role in ("user", "assistant") else role_for_sender(self.sender)
        return {"role": role, "content": self.content}


class ChatRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: Optional[str] = None
    agent: str = DEFAULT_AGENT
    conversation_history: List[HistoryItem] = Field(default_factory=list, alias="conversationHistory")
    reference_files: Optional[List[str]] = Field(None, alias="referenceFiles")


class VideoRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: Optional[str] = None
    subject: Optional[str] = None
    conversation_history: List[HistoryItem] = Field(default_factory=list, alias="conversationHistory")
    agent_type: str = Field(DEFAULT_AGENT, alias="agentType")


class StudyFileModel(BaseModel):
    name: str
    content: str = ""
    type: Optional[str] = None
    size: Optional[int] = None


class QuizRequest(BaseModel):
    files: List[StudyFileModel] = Field(default_factory=list)
    topic: str = "General Knowledge"
    difficulty: str = "medium"


class SummaryRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    files: List[StudyFileModel] = Field(default_factory=list)
    custom_prompt: Optional[str] = Field(None, alias="customPrompt")


def _study_files(files: List[StudyFileModel]) -> List[StudyFile]:
    try:
        return [StudyFile.from_dict(f.model_dump()) for f in files]
    except StudyFileError as e:
        raise InvalidRequest(str(e)) from e


# ==================== Request Checks ====================
# Declared ahead of the service dependencies so a bad request gets its 400
# without building an LLM-backed service first.

def chat_request(request: ChatRequest) -> ChatRequest:
    if not request.message:
        raise InvalidRequest("Message is required")
    return request


def video_request(request: VideoRequest) -> VideoRequest:
    if not request.message:
        raise InvalidRequest("Message is required")
    return request


def quiz_request(request: QuizRequest) -> QuizRequest:
    _study_files(request.files)
    return request


def summary_request(request: SummaryRequest) -> SummaryRequest:
    if not request.files:
        raise InvalidRequest("Please upload study materials first")
    _study_files(request.files)
    return request


# ==================== API Endpoints ====================

@app.get("/api/health")
async def health():
    """Health check endpoint."""
    return {"status": "OK", "message": "YouTube API service is running"}


@app.post("/api/chat")
async def chat(
    request: ChatRequest = Depends(chat_request),
    chat_service: ChatService = Depends(get_chat_service),
):
    """Forward one user message and the recent history to the LLM."""
    start_time = time.time()
    history = [item.to_turn() for item in request.conversation_history]
    logger.request("POST", "/api/chat", data={
        "agent": request.agent,
        "history_length": len(history),
        "message_preview": request.message[:50] + "..." if len(request.message) > 50 else request.message,
    })

    try:
        response = await chat_service.reply(request.message, request.agent, history, request.reference_files)
    except UpstreamAuthError as e:
        logger.error("Groq authentication failed", error=e)
        return JSONResponse(status_code=401, content={
            "error": "Authentication failed",
            "details": "Invalid API key",
        })
    except Exception as e:
        logger.error("Error in chat endpoint", error=e)
        content = {"error": "Failed to process chat message", "details": str(e)}
        if settings.is_development:
            content["type"] = type(e).__name__
        return JSONResponse(status_code=500, content=content)

    logger.response(200, "/api/chat", duration=time.time() - start_time, data={"response_length": len(response)})
    return {"success": True, "response": response}


@app.post("/api/suggest-videos")
async def suggest_videos(
    request: VideoRequest = Depends(video_request),
    video_service: VideoSuggestionService = Depends(get_video_service),
):
    """Find YouTube videos related to the latest message."""
    logger.request("POST", "/api/suggest-videos", data={
        "agent_type": request.agent_type,
        "has_history": bool(request.conversation_history),
    })
    try:
        suggestions = await video_service.suggest(
            request.message,
            [item.to_turn() for item in request.conversation_history],
            agent=request.agent_type,
            subject=request.subject,
        )
    except Exception as e:
        logger.error("Error in suggest-videos endpoint", error=e)
        return JSONResponse(status_code=500, content={
            "error": "Failed to fetch video suggestions",
            "details": str(e),
        })

    logger.success(f"Found {len(suggestions.videos)} videos", data={"query": suggestions.query})
    return suggestions.to_dict()


@app.post("/api/quiz/generate")
async def generate_quiz(
    request: QuizRequest = Depends(quiz_request),
    quiz_generator: QuizGenerator = Depends(get_quiz_generator),
):
    """Generate multiple choice questions from uploaded study files."""
    logger.section("QUIZ GENERATION", {"files": [f.name for f in request.files], "topic": request.topic})
    try:
        result = await quiz_generator.generate(_study_files(request.files), request.topic, request.difficulty)
    except UpstreamAuthError as e:
        logger.error("Groq authentication failed", error=e)
        return JSONResponse(status_code=401, content={
            "error": "Authentication failed",
            "details": "Invalid API key",
        })
    return result.to_dict()


@app.post("/api/summaries")
async def generate_summaries(
    request: SummaryRequest = Depends(summary_request),
    summary_generator: SummaryGenerator = Depends(get_summary_generator),
):
    """Summarize each uploaded file; failed files get a fallback summary."""
    summaries = await summary_generator.summarize(_study_files(request.files), request.custom_prompt)
    return {"success": True, "summaries": [s.to_dict() for s in summaries]}


@app.on_event("shutdown")
async def shutdown_event():
    await close_services()
    logger.info("🛑 Services closed")


if __name__ == "__main__":
    import uvicorn

    try:
        settings.validate()
    except ConfigurationError as e:
        logger.error("Refusing to start", error=e)
        sys.exit(1)

    def handle_exit(*args):
        """Handle graceful shutdown."""
        logger.section("SERVER SHUTDOWN", {"reason": "signal received"})
        sys.exit(0)

    signal.signal(signal.SIGINT, handle_exit)
    signal.signal(signal.SIGTERM, handle_exit)

    logger.section("SERVER STARTUP", {
        "port": settings.port,
        "model": settings.model,
        "tts_configured": bool(settings.tts_api_key),
    })
    try:
        uvicorn.run(app, host="0.0.0.0", port=settings.port)
    except KeyboardInterrupt:
        logger.info("🛑 Server stopped.")
        sys.exit(0)
