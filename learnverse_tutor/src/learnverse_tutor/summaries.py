"""
Study Material Summaries

Summarizes uploaded files through the chat service (study persona) and derives
key points, difficulty and topics from the reply text.
"""

import logging
import math
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from learnverse_tutor.chat_service import ChatService
from learnverse_tutor.messages import new_message_id
from learnverse_tutor.study_files import StudyFile

logger = logging.getLogger(__name__)

CONTENT_LIMIT = 3000
MAX_KEY_POINTS = 7
MAX_TOPICS = 5
WORDS_PER_MINUTE = 200

DEFAULT_KEY_POINTS = ["Review main concepts", "Practice key exercises", "Understand core principles"]
COMMON_TOPICS = [
    "Mathematics", "Science", "History", "Literature", "Physics", "Chemistry",
    "Biology", "Programming", "Computer Science", "Geography", "Economics",
]
FALLBACK_CONTENT = "Summary could not be generated automatically. Please review the material manually."

SUMMARY_PROMPT = """Please analyze the following study material and create a comprehensive summary. Follow these guidelines:
1. Create a clear, concise title that reflects the main topic
2. Write a detailed summary (2-3 paragraphs) covering the key concepts
3. Extract 5-7 key points that are essential for understanding
4. Determine the difficulty level (Beginner/Intermediate/Advanced)
5. Estimate reading time in minutes
6. Identify 3-5 relevant topics/tags
7. Include any important formulas, definitions, or examples
8. Highlight any practical applications or real-world connections

Study Material:
{content}..."""

_KEY_POINTS_HEADER_RE = re.compile(r"(?:key|main|important)\s+points?:?", re.IGNORECASE)
_LIST_ITEM_RE = re.compile(r"^\s*(?:\d+\.|[-•*])\s+([^\n]+)", re.MULTILINE)


@dataclass
class Summary:
    title: str
    content: str
    key_points: List[str] = field(default_factory=list)
    difficulty: str = "Intermediate"
    estimated_read_time: int = 5
    topics: List[str] = field(default_factory=list)
    id: str = field(default_factory=new_message_id)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "content": self.content,
            "keyPoints": self.key_points,
            "difficulty": self.difficulty,
            "estimatedReadTime": self.estimated_read_time,
            "topics": self.topics,
        }

    def to_markdown(self) -> str:
        points = "\n".join(f"- {p}" for p in self.key_points)
        return (
            f"# {self.title}\n\n{self.content}\n\n"
            f"## Key Points\n{points}\n\n"
            f"## Topics\n{', '.join(self.topics)}"
        )


def extract_key_points(text: str) -> List[str]:
    """List items from the reply, preferring those under a "Key Points" heading."""
    header = _KEY_POINTS_HEADER_RE.search(text)
    points = []
    if header:
        points = [m.group(1).strip() for m in _LIST_ITEM_RE.finditer(text[header.end():])]
    if not points:
        points = [m.group(1).strip() for m in _LIST_ITEM_RE.finditer(text)]
    return points[:MAX_KEY_POINTS] or list(DEFAULT_KEY_POINTS)


def extract_difficulty(text: str) -> str:
    lower = text.lower()
    if any(word in lower for word in ("beginner", "basic", "introduction")):
        return "Beginner"
    if any(word in lower for word in ("advanced", "complex", "expert")):
        return "Advanced"
    return "Intermediate"


def extract_topics(text: str) -> List[str]:
    lower = text.lower()
    found = [topic for topic in COMMON_TOPICS if topic.lower() in lower]
    return found[:MAX_TOPICS] or ["General Study"]


def fallback_summary(file: StudyFile) -> Summary:
    return Summary(
        title=file.title,
        content=FALLBACK_CONTENT,
        key_points=["Review material manually", "Extract key concepts", "Practice exercises"],
        difficulty="Intermediate",
        estimated_read_time=5,
        topics=["General Study"],
    )


class SummaryGenerator:
    """One chat request per file; a failed file gets the fallback summary."""

    AGENT = "study"

    def __init__(self, chat: ChatService):
        self.chat = chat

    async def summarize_file(self, file: StudyFile, custom_prompt: Optional[str] = None) -> Summary:
        content = file.readable_content()
        prompt = custom_prompt or SUMMARY_PROMPT.format(content=content[:CONTENT_LIMIT])
        try:
            reply = await self.chat.reply(prompt, self.AGENT, [])
        except Exception as e:
            logger.error(f"❌ [SummaryGenerator] Summary failed for {file.name}: {e}")
            return fallback_summary(file)

        return Summary(
            title=file.title,
            content=reply,
            key_points=extract_key_points(reply),
            difficulty=extract_difficulty(reply),
            estimated_read_time=math.ceil(len(content) / WORDS_PER_MINUTE),
            topics=extract_topics(reply),
        )

    async def summarize(
        self,
        files: List[StudyFile],
        custom_prompt: Optional[str] = None,
        on_progress: Optional[Callable[[float], None]] = None,
    ) -> List[Summary]:
        """
        Summarize files one after another.

        Args:
            files: Uploaded study files
            custom_prompt: Replaces the default guideline prompt
            on_progress: Called with the completed percentage after each file

        Returns:
            One summary per file, in order
        """
        summaries = []
        for index, file in enumerate(files, 1):
            summaries.append(await self.summarize_file(file, custom_prompt))
            if on_progress:
                on_progress(index / len(files) * 100)
        logger.info(f"📝 [SummaryGenerator] Generated {len(summaries)} summaries")
        return summaries
