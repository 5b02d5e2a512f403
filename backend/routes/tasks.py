"""
Task automation routes

POST /api/tasks/perform accepts a free-text command (usually from the voice
assistant) or structured parameters, runs it through the automation service and
returns the result with the parsed task metadata attached.
"""

from datetime import datetime, timezone
from typing import Any, Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field, field_validator

from learnverse_tutor.automation import AutomationService
from learnverse_tutor.config import Settings
from learnverse_tutor.task_parser import SUPPORTED_TASKS, TaskParams, parse_task_command

from lib.dependencies import get_automation_service, get_settings
from lib.logger import get_logger

logger = get_logger("backend.routes.tasks")

router = APIRouter(prefix="/api/tasks")


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class TaskRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    input: Optional[str] = None
    task_type: Optional[str] = Field(None, alias="taskType")
    grade: Optional[str] = None
    subject: Optional[str] = None
    year: Optional[str] = None
    website: Optional[str] = None
    custom_query: Optional[str] = Field(None, alias="customQuery")

    @field_validator("grade", "year", mode="before")
    @classmethod
    def _numbers_as_text(cls, value: Any) -> Any:
        if isinstance(value, int):
            return str(value)
        return value

    @property
    def has_overrides(self) -> bool:
        return bool(self.task_type and (self.grade or self.subject or self.year or self.website))


@router.post("/perform")
async def perform_task(
    request: TaskRequest,
    settings: Settings = Depends(get_settings),
    automation: AutomationService = Depends(get_automation_service),
):
    """Run one task command."""
    if not request.input or not request.input.strip():
        return JSONResponse(status_code=400, content={"error": "No input provided"})

    logger.request("POST", "/api/tasks/perform", data={"input": request.input})
    try:
        if request.has_overrides:
            params = TaskParams.from_overrides(
                task_type=request.task_type,
                grade=request.grade,
                subject=request.subject,
                year=request.year,
                website=request.website,
                custom_query=request.custom_query,
                default_website=settings.automation_default_website,
            )
        else:
            params = parse_task_command(request.input, default_website=settings.automation_default_website)

        logger.info("Performing task with params", data=params.to_dict())
        result = await automation.perform_task(params)
    except Exception as e:
        logger.error("Task execution error", error=e)
        return JSONResponse(status_code=500, content={
            "error": str(e),
            "voiceCommand": request.input,
            "timestamp": _timestamp(),
        })

    result.update({
        "voiceCommand": request.input,
        "taskType": params.task_type,
        "grade": params.grade,
        "subject": params.subject,
        "year": params.year,
        "timestamp": _timestamp(),
    })
    logger.response(200, "/api/tasks/perform", data={"success": result.get("success")})
    return result


@router.get("/status")
async def task_status():
    return {
        "status": "ready",
        "supportedTasks": SUPPORTED_TASKS,
        "timestamp": _timestamp(),
    }
