"""
Quiz Generation

Asks the LLM for multiple choice questions about uploaded study material and
turns its (often slightly broken) JSON into validated questions.

Parsing is a pure function: `parse_quiz_response(raw)` returns questions or
raises QuizParseError. QuizGenerator drives it with an explicit retry policy
and merges attempts, dropping duplicate questions.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from learnverse_tutor.errors import QuizParseError, UpstreamAPIError, UpstreamAuthError
from learnverse_tutor.llm_client import LLMClient
from learnverse_tutor.study_files import StudyFile

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a quiz generator. Create multiple choice questions based on study materials. "
    "Return exactly 5 questions in JSON format."
)
CONTENT_LIMIT = 2000
DIFFICULTIES = ("easy", "medium", "hard")

_FENCE_RE = re.compile(r"```(?:json)?", re.IGNORECASE)
_ARRAY_OF_OBJECTS_RE = re.compile(r"\[\s*\{")
_TRAILING_COMMA_RE = re.compile(r",\s*([\]}])")
_SMART_QUOTES = {"“": '"', "”": '"', "‘": "'", "’": "'"}


@dataclass
class QuizQuestion:
    id: str
    question: str
    options: List[str]
    correct_answer: int
    explanation: str = "Explanation not provided"
    difficulty: str = "medium"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "question": self.question,
            "options": self.options,
            "correctAnswer": self.correct_answer,
            "explanation": self.explanation,
            "difficulty": self.difficulty,
        }


@dataclass
class QuizRetryPolicy:
    """How hard to try for a full quiz."""
    max_attempts: int = 3
    target_questions: int = 5


@dataclass
class QuizResult:
    questions: List[QuizQuestion] = field(default_factory=list)
    warning: Optional[str] = None
    attempts: int = 0

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "success": bool(self.questions),
            "questions": [q.to_dict() for q in self.questions],
            "attempts": self.attempts,
        }
        if self.warning:
            result["warning"] = self.warning
        return result


@dataclass
class QuizScore:
    correct: int
    total: int

    @property
    def percentage(self) -> int:
        return round(self.correct / self.total * 100) if self.total else 0


def _array_start(text: str) -> int:
    match = _ARRAY_OF_OBJECTS_RE.search(text)
    start = match.start() if match else text.find("[")
    if start == -1:
        raise QuizParseError("No JSON array found in quiz response")
    return start


def _extract_array(text: str) -> str:
    """Outermost JSON array in the text; an unterminated one runs to the end."""
    start = _array_start(text)
    end = text.rfind("]")
    if end < start:
        return text[start:]
    return text[start:end + 1]


def _repair(candidate: str) -> str:
    for smart, plain in _SMART_QUOTES.items():
        candidate = candidate.replace(smart, plain)
    return _TRAILING_COMMA_RE.sub(r"\1", candidate)


def _close_truncated(candidate: str) -> str:
    """Drop a cut-off last object and close the array."""
    last_object = candidate.rfind("}")
    if last_object == -1:
        raise QuizParseError("Quiz response was truncated before the first question")
    return _repair(candidate[:last_object + 1] + "]")


def _answer_index(value: Any, option_count: int) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        index = value
    elif isinstance(value, str) and value.strip().isdigit():
        index = int(value.strip())
    elif isinstance(value, str) and len(value.strip()) == 1 and value.strip().isalpha():
        index = ord(value.strip().upper()) - ord("A")
    else:
        return None
    return index if 0 <= index < option_count else None


def _validate(item: Any) -> Optional[QuizQuestion]:
    if not isinstance(item, dict):
        return None
    text = item.get("question")
    options = item.get("options")
    if not isinstance(text, str) or not text.strip():
        return None
    if not isinstance(options, list) or len(options) < 2:
        return None
    options = [str(o).strip() for o in options]
    answer = _answer_index(item.get("correctAnswer", 0), len(options))
    if answer is None:
        return None
    return QuizQuestion(
        id="",
        question=text.strip(),
        options=options,
        correct_answer=answer,
        explanation=str(item.get("explanation") or "Explanation not provided"),
    )


def parse_quiz_response(raw: str) -> List[QuizQuestion]:
    """
    Parse LLM output into validated questions.

    Handles code fences, prose around the array, smart quotes, trailing commas
    and a response cut off mid-question. Items that fail validation are dropped.

    Raises:
        QuizParseError: nothing usable could be recovered
    """
    text = _FENCE_RE.sub("", raw or "")
    candidate = _repair(_extract_array(text))
    try:
        data = json.loads(candidate)
    except json.JSONDecodeError:
        # The last "]" may belong to an options list of a cut-off response
        tail = _repair(text[_array_start(text):])
        try:
            data = json.loads(_close_truncated(tail))
        except json.JSONDecodeError as e:
            raise QuizParseError(f"Quiz response is not valid JSON: {e}") from e

    if not isinstance(data, list):
        raise QuizParseError("Quiz response is not a JSON array")

    questions = [q for q in (_validate(item) for item in data) if q is not None]
    if not questions:
        raise QuizParseError("Quiz response contained no valid questions")
    for index, question in enumerate(questions, 1):
        question.id = str(index)
    return questions


def _normalize(text: str) -> str:
    return re.sub(r"\s+", " ", text.lower()).strip(" ?.!")


def score_quiz(questions: List[QuizQuestion], answers: Dict[str, int]) -> QuizScore:
    """Count answers (keyed by question id) that match the correct option."""
    correct = sum(1 for q in questions if answers.get(q.id) == q.correct_answer)
    return QuizScore(correct=correct, total=len(questions))


class QuizGenerator:
    """Generates a quiz from study files with bounded retries."""

    TEMPERATURE = 0.7
    MAX_TOKENS = 2000

    def __init__(self, llm: LLMClient, policy: Optional[QuizRetryPolicy] = None):
        self.llm = llm
        self.policy = policy or QuizRetryPolicy()

    def build_messages(self, files: List[StudyFile], topic: str, difficulty: str) -> List[Dict[str, str]]:
        materials = "\n\n".join(
            f"File: {f.name}\nContent: {f.readable_content()[:CONTENT_LIMIT]}..." for f in files
        )
        n = self.policy.target_questions
        user_prompt = (
            f"Based on these study materials, create {n} multiple choice questions with 4 options each. "
            f"Topic: {topic}. Difficulty: {difficulty}. "
            'Format as JSON array with structure: [{"question": "...", "options": ["A", "B", "C", "D"], '
            '"correctAnswer": 0, "explanation": "..."}]'
            f"\n\nMaterials:\n{materials}"
        )
        return [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": user_prompt},
        ]

    async def generate(
        self,
        files: List[StudyFile],
        topic: str = "General Knowledge",
        difficulty: str = "medium",
    ) -> QuizResult:
        """
        Generate up to `target_questions` unique questions.

        Args:
            files: Uploaded study files
            topic: Quiz topic
            difficulty: easy / medium / hard

        Returns:
            QuizResult; an empty question list always comes with a warning
        """
        if difficulty not in DIFFICULTIES:
            difficulty = "medium"
        if not files:
            return QuizResult(warning="Please upload study materials first", attempts=0)

        messages = self.build_messages(files, topic, difficulty)
        collected: List[QuizQuestion] = []
        seen = set()
        attempts = 0

        while attempts < self.policy.max_attempts and len(collected) < self.policy.target_questions:
            attempts += 1
            try:
                raw = await self.llm.complete(messages, temperature=self.TEMPERATURE, max_tokens=self.MAX_TOKENS)
                parsed = parse_quiz_response(raw)
            except UpstreamAuthError:
                raise
            except (QuizParseError, UpstreamAPIError) as e:
                logger.warning(f"⚠️ [QuizGenerator] Attempt {attempts}/{self.policy.max_attempts} failed: {e}")
                continue

            for question in parsed:
                key = _normalize(question.question)
                if key in seen:
                    continue
                seen.add(key)
                question.difficulty = difficulty
                collected.append(question)
            logger.info(f"🧠 [QuizGenerator] Attempt {attempts}: {len(collected)} unique questions so far")

        questions = collected[:self.policy.target_questions]
        for index, question in enumerate(questions, 1):
            question.id = str(index)

        warning = None
        if not questions:
            warning = "Failed to generate quiz questions from your materials. Please try again."
        elif len(questions) < self.policy.target_questions:
            warning = f"Only {len(questions)} of {self.policy.target_questions} questions could be generated."
        return QuizResult(questions=questions, warning=warning, attempts=attempts)
