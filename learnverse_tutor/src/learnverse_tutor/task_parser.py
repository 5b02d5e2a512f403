"""
Task Command Parser

Turns free-text (usually voice) commands such as
"download past papers for grade 12 mathematics" into task parameters for the
automation service.
"""

import re
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from learnverse_tutor.config import DBE_EXAMS_URL

EXAM_PAPERS = "exam_papers"
SEARCH_RESOURCES = "search_resources"
SUPPORTED_TASKS = [EXAM_PAPERS, SEARCH_RESOURCES]

DBE_URL = "https://www.education.gov.za"
IEB_URL = "https://www.ieb.co.za"

_GRADE_RE = re.compile(r"grade\s*(10|11|12)")
_YEAR_RE = re.compile(r"(20\d{2})")
# Longest alternatives first so "life science" wins over "science"
_SUBJECT_RE = re.compile(
    r"physical science|life science|mathematics|accounting|geography|history|english|science|math"
)
_DBE_RE = re.compile(r"dbe|department of basic education")
_IEB_RE = re.compile(r"ieb|independent examinations board")
_SEARCH_RE = re.compile(r"\b(search|find|look up|lookup)\b")
_RESOURCE_RE = re.compile(r"\b(resources?|materials?)\b")
_PAPER_RE = re.compile(r"\b(download|papers?|exams?)\b")


@dataclass
class TaskParams:
    """Parameters for one automation task."""
    website: str
    task_type: str = EXAM_PAPERS
    grade: Optional[str] = None
    subject: Optional[str] = None
    year: Optional[str] = None
    custom_query: Optional[str] = None

    @classmethod
    def from_overrides(
        cls,
        task_type: str,
        grade: Optional[str] = None,
        subject: Optional[str] = None,
        year: Optional[str] = None,
        website: Optional[str] = None,
        custom_query: Optional[str] = None,
        default_website: str = DBE_EXAMS_URL,
    ) -> "TaskParams":
        """Structured parameters supplied directly by the caller."""
        return cls(
            website=website or default_website,
            task_type=task_type,
            grade=grade,
            subject=subject,
            year=year or str(datetime.now().year),
            custom_query=custom_query,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "website": self.website,
            "taskType": self.task_type,
            "grade": self.grade,
            "subject": self.subject,
            "year": self.year,
            "customQuery": self.custom_query,
        }


def detect_task_type(lower: str) -> str:
    if _SEARCH_RE.search(lower) and _RESOURCE_RE.search(lower) and not _PAPER_RE.search(lower):
        return SEARCH_RESOURCES
    return EXAM_PAPERS


def parse_task_command(text: str, default_website: str = DBE_EXAMS_URL) -> TaskParams:
    """
    Parse a free-text command.

    Args:
        text: Command text
        default_website: Used when neither DBE nor IEB is mentioned

    Returns:
        TaskParams with whatever fields could be recognised
    """
    lower = text.lower()
    grade = _GRADE_RE.search(lower)
    year = _YEAR_RE.search(lower)
    subject = _SUBJECT_RE.search(lower)

    if _DBE_RE.search(lower):
        website = DBE_URL
    elif _IEB_RE.search(lower):
        website = IEB_URL
    else:
        website = default_website

    return TaskParams(
        website=website,
        task_type=detect_task_type(lower),
        grade=grade.group(1) if grade else None,
        subject=subject.group(0) if subject else None,
        year=year.group(1) if year else None,
        custom_query=text,
    )
