"""
Video Suggestions

Finds YouTube videos related to the conversation:
1. LLM keyword extraction (with a plain-text fallback)
2. Query building from keywords, subject and persona
3. YouTube search + statistics lookup
4. Relevance ranking with a small string heuristic
"""

import logging
import math
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx

from learnverse_tutor.agents import get_persona
from learnverse_tutor.config import Settings
from learnverse_tutor.errors import UpstreamAPIError
from learnverse_tutor.formatting import format_duration, format_time_ago, format_view_count
from learnverse_tutor.llm_client import LLMClient
from learnverse_tutor.messages import role_for_sender

logger = logging.getLogger(__name__)


SUBJECT_KEYWORDS: Dict[str, List[str]] = {
    "cell biology": ["cell biology", "cell", "biology", "organism", "dna", "gene", "evolution"],
    "physics": ["newton", "laws", "physics", "physical", "gravity", "motion", "force", "energy",
                "velocity", "acceleration", "mass", "weight"],
    "chemistry": ["chemistry", "chemical", "atoms", "molecules", "reaction", "element", "compound",
                  "bond", "acid", "base"],
    "mathematics": ["math", "mathematics", "algebra", "calculus", "derivatives", "equations",
                    "geometry", "trigonometry", "statistics"],
    "programming": ["programming", "coding", "python", "javascript", "code", "algorithm",
                    "function", "variable", "software"],
    "history": ["history", "historical", "war", "battle", "ancient", "medieval", "civilization",
                "empire", "kingdom"],
    "geography": ["geography", "geographic", "country", "continent", "ocean", "mountain",
                  "climate", "weather"],
    "literature": ["literature", "english", "writing", "poetry", "novel", "story", "author", "book"],
    "biology": ["photosynthesis", "plants", "ecosystem", "species", "habitat", "environment"],
}

EDUCATIONAL_MARKERS = ("tutorial", "explained", "lesson", "course", "guide", "introduction",
                       "learn", "lecture", "class", "basics")

STOP_WORDS = {"the", "and", "for", "with", "what", "how", "why", "are", "you", "this", "that"}


@dataclass
class Video:
    """One suggested video."""
    id: str
    title: str
    description: str = ""
    thumbnail: str = ""
    channel_title: str = ""
    published_at: str = ""
    url: str = ""
    view_count: str = "0"
    like_count: str = "0"
    duration: str = "PT0S"
    relevance: float = 0.0

    @property
    def display_duration(self) -> str:
        return format_duration(self.duration)

    @property
    def display_views(self) -> str:
        return format_view_count(self.view_count)

    @property
    def display_age(self) -> str:
        return format_time_ago(self.published_at) if self.published_at else ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "thumbnail": self.thumbnail,
            "channelTitle": self.channel_title,
            "publishedAt": self.published_at,
            "url": self.url,
            "viewCount": self.view_count,
            "likeCount": self.like_count,
            "duration": self.duration,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Video":
        return cls(
            id=data["id"],
            title=data.get("title", ""),
            description=data.get("description", ""),
            thumbnail=data.get("thumbnail", ""),
            channel_title=data.get("channelTitle", ""),
            published_at=data.get("publishedAt", ""),
            url=data.get("url", ""),
            view_count=str(data.get("viewCount", "0")),
            like_count=str(data.get("likeCount", "0")),
            duration=data.get("duration", "PT0S"),
        )


@dataclass
class VideoSuggestions:
    """Result of one suggestion request."""
    query: str
    original_message: str
    extracted_keywords: str
    videos: List[Video] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": True,
            "query": self.query,
            "originalMessage": self.original_message,
            "extractedKeywords": self.extracted_keywords,
            "videos": [v.to_dict() for v in self.videos],
        }


def detect_subject(message: str, agent: str) -> str:
    """Guess the subject of a message, falling back to the persona's default."""
    lower = message.lower()
    for subject, keywords in SUBJECT_KEYWORDS.items():
        if any(keyword in lower for keyword in keywords):
            return subject
    return get_persona(agent).fallback_subject


def fallback_keywords(message: str) -> str:
    """Keywords from the raw message when the LLM is unavailable."""
    cleaned = re.sub(r"[^\w\s]", " ", message.lower())
    words = [w for w in cleaned.split() if len(w) > 3][:3]
    return " ".join(words) or "education tutorial"


def build_search_query(keywords: str, subject: Optional[str], agent: str) -> str:
    """
    Combine extracted keywords with the subject and persona enhancement words.

    The subject is appended only if the keywords don't already mention it; each
    enhancement word is appended only if no query word overlaps it.
    """
    query = keywords.strip()
    if subject and subject.lower() not in query.lower():
        query = f"{query} {subject}".strip()

    query_words = query.lower().split()
    enhancement_words = get_persona(agent).video_enhancement.split()
    missing = [
        word for word in enhancement_words
        if not any(q in word or word in q for q in query_words)
    ]
    if missing:
        query = f"{query} {' '.join(missing)}"
    return query


def _terms(text: str) -> List[str]:
    return re.findall(r"[a-z0-9]+", (text or "").lower())


def _to_int(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def score_relevance(video: Video, query: str) -> float:
    """
    Heuristic relevance of a video to a search query.

    Title matches weigh most, then description and channel; educational wording
    and popularity add small bonuses and #shorts clips are pushed down.
    """
    terms = {t for t in _terms(query) if len(t) > 2 and t not in STOP_WORDS}
    title_terms = set(_terms(video.title))
    score = 0.0

    if terms:
        title_hits = len(terms & title_terms)
        desc_hits = len(terms & (set(_terms(video.description)) - title_terms))
        score += 3.0 * title_hits / len(terms)
        score += 1.0 * desc_hits / len(terms)
        if terms & set(_terms(video.channel_title)):
            score += 0.25

    title_lower = video.title.lower()
    if any(marker in title_lower for marker in EDUCATIONAL_MARKERS):
        score += 0.5
    if "#shorts" in title_lower:
        score -= 1.0

    views = _to_int(video.view_count)
    likes = _to_int(video.like_count)
    score += 0.1 * math.log10(views + 1)
    if views > 0:
        score += min(likes / views * 10, 0.5)

    return round(score, 4)


def rank_videos(videos: List[Video], query: str) -> List[Video]:
    """Sort by relevance, best first (stable for ties)."""
    for video in videos:
        video.relevance = score_relevance(video, query)
    return sorted(videos, key=lambda v: -v.relevance)


class YouTubeClient:
    """YouTube Data API v3 search + statistics lookup."""

    def __init__(self, settings: Settings, http_client: Optional[httpx.AsyncClient] = None, timeout: float = 15.0):
        self.api_key = settings.youtube_api_key
        self.base_url = settings.youtube_base_url
        self.http_client = http_client
        self.timeout = timeout

    async def _get(self, path: str, params: Dict[str, Any]) -> Dict[str, Any]:
        params = {**params, "key": self.api_key}
        if self.http_client is not None:
            response = await self.http_client.get(f"{self.base_url}/{path}", params=params)
        else:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(f"{self.base_url}/{path}", params=params)
        if response.status_code != 200:
            raise UpstreamAPIError(f"YouTube API error: {response.status_code}", status_code=response.status_code)
        return response.json()

    async def search(self, query: str, max_results: int = 3) -> List[Video]:
        """
        Search videos and attach statistics.

        Args:
            query: Search query
            max_results: Number of search hits to request

        Returns:
            Videos in YouTube's relevance order
        """
        data = await self._get("search", {
            "part": "snippet",
            "q": query,
            "type": "video",
            "order": "relevance",
            "videoDefinition": "high",
            "videoDuration": "medium",
            "maxResults": max_results,
        })
        items = data.get("items", [])
        if not items:
            return []

        video_ids = [item["id"]["videoId"] for item in items]
        stats_data = await self._get("videos", {
            "part": "statistics,contentDetails",
            "id": ",".join(video_ids),
        })
        stats_by_id = {item.get("id"): item for item in stats_data.get("items", [])}

        videos = []
        for item in items:
            video_id = item["id"]["videoId"]
            snippet = item.get("snippet", {})
            stats = stats_by_id.get(video_id, {})
            videos.append(Video(
                id=video_id,
                title=snippet.get("title", ""),
                description=snippet.get("description", ""),
                thumbnail=snippet.get("thumbnails", {}).get("medium", {}).get("url", ""),
                channel_title=snippet.get("channelTitle", ""),
                published_at=snippet.get("publishedAt", ""),
                url=f"https://www.youtube.com/watch?v={video_id}",
                view_count=str(stats.get("statistics", {}).get("viewCount", "0")),
                like_count=str(stats.get("statistics", {}).get("likeCount", "0")),
                duration=stats.get("contentDetails", {}).get("duration", "PT0S"),
            ))
        return videos


class VideoSuggestionService:
    """Server side of the video suggestion proxy."""

    MAX_RESULTS = 3
    CONTEXT_WINDOW = 5

    def __init__(self, llm: Optional[LLMClient], youtube: YouTubeClient):
        self.llm = llm
        self.youtube = youtube

    async def extract_keywords(self, message: str, history: List[Dict[str, str]], agent: str) -> str:
        """
        Ask the LLM for 2-4 YouTube search keywords.

        Falls back to plain word extraction if the LLM call fails.
        """
        if self.llm is None:
            return fallback_keywords(message)

        persona = get_persona(agent)
        context = [
            {"role": turn.get("role") or role_for_sender(turn.get("sender")), "content": turn.get("content", "")}
            for turn in history[-self.CONTEXT_WINDOW:]
        ]
        system_prompt = f"""You are an AI assistant helping to find relevant YouTube videos for {persona.video_context}.

Based on the conversation context and the user's latest message, extract 2-4 specific keywords that would be perfect for finding educational YouTube videos.

Guidelines:
- Focus on the core educational concept or topic
- Include relevant subject area if applicable (math, science, history, etc.)
- Add learning-focused terms when appropriate (tutorial, explained, guide)
- Consider the conversation context to understand what the user is trying to learn
- Return ONLY the keywords separated by spaces, no extra text or punctuation

Examples:
- User asks about photosynthesis → "photosynthesis biology plants tutorial"
- User asks about Python loops → "python loops programming tutorial"
- User asks about calculus → "calculus derivatives mathematics explained"
- User asks about history → "world war history documentary\""""
        messages = [
            {"role": "system", "content": system_prompt},
            *context,
            {"role": "user", "content": f'Latest message: "{message}"\n\nExtract YouTube search keywords:'},
        ]
        try:
            keywords = await self.llm.complete(messages, temperature=0.2, max_tokens=30)
            keywords = keywords.strip().strip('"')
            logger.info(f"🔍 [VideoSuggestions] AI extracted keywords: {keywords}")
            return keywords or fallback_keywords(message)
        except Exception as e:
            logger.warning(f"⚠️ [VideoSuggestions] Keyword extraction failed, using fallback: {e}")
            return fallback_keywords(message)

    async def suggest(
        self,
        message: str,
        history: List[Dict[str, str]],
        agent: str = "tutor",
        subject: Optional[str] = None,
    ) -> VideoSuggestions:
        keywords = await self.extract_keywords(message, history or [], agent)
        query = build_search_query(keywords, subject, agent)
        logger.info(f"🔍 [VideoSuggestions] Final search query: {query}")

        candidates = await self.youtube.search(query, self.MAX_RESULTS * 2)
        videos = rank_videos(candidates, query)[:self.MAX_RESULTS]

        return VideoSuggestions(
            query=query,
            original_message=message,
            extracted_keywords=" ".join(query.split(" ")[:4]),
            videos=videos,
        )
