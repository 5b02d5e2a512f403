"""
Unit Tests for Video Suggestions

Tests keyword fallback, query building, subject detection, relevance ranking
and the YouTube client against a mocked transport.
"""

import httpx
import pytest
import sys
import os

# Add project root to path
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), "../.."))
sys.path.insert(0, os.path.join(project_root, "learnverse_tutor", "src"))

from learnverse_tutor.config import Settings
from learnverse_tutor.errors import UpstreamAPIError
from learnverse_tutor.video_suggestions import (
    Video,
    VideoSuggestionService,
    YouTubeClient,
    build_search_query,
    detect_subject,
    fallback_keywords,
    rank_videos,
    score_relevance,
)


def youtube_handler(search_items, stats_items, seen=None):
    """MockTransport handler serving /search and /videos."""

    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        if request.url.path.endswith("/search"):
            return httpx.Response(200, json={"items": search_items})
        if request.url.path.endswith("/videos"):
            return httpx.Response(200, json={"items": stats_items})
        return httpx.Response(404)

    return handler


def search_item(video_id, title, description="", channel="Channel"):
    return {
        "id": {"videoId": video_id},
        "snippet": {
            "title": title,
            "description": description,
            "channelTitle": channel,
            "publishedAt": "2024-01-01T00:00:00Z",
            "thumbnails": {"medium": {"url": f"https://img.example/{video_id}.jpg"}},
        },
    }


def stats_item(video_id, views, likes, duration):
    return {
        "id": video_id,
        "statistics": {"viewCount": views, "likeCount": likes},
        "contentDetails": {"duration": duration},
    }


class KeywordLLM:
    def __init__(self, reply=None, error=None):
        self.reply = reply
        self.error = error
        self.calls = []

    async def complete(self, messages, temperature=0.7, max_tokens=1000):
        self.calls.append({"messages": messages, "temperature": temperature, "max_tokens": max_tokens})
        if self.error:
            raise self.error
        return self.reply


class TestQueryBuilding:

    def test_fallback_keywords(self):
        assert fallback_keywords("What is photosynthesis, really?") == "what photosynthesis really"

    def test_fallback_keywords_default(self):
        assert fallback_keywords("hi a to") == "education tutorial"

    def test_subject_appended_when_missing(self):
        query = build_search_query("newton laws", "physics", "tutor")
        assert query.startswith("newton laws physics")

    def test_subject_not_duplicated(self):
        query = build_search_query("physics newton laws", "physics", "coding")
        assert query.count("physics") == 1

    def test_enhancement_words_added_once(self):
        assert build_search_query("python loops tutorial", None, "coding") == "python loops tutorial programming code"

    def test_enhancement_word_overlap(self):
        # "explained" is already covered by "explain"
        query = build_search_query("fractions explain", None, "tutor")
        assert query == "fractions explain education tutorial"


class TestDetectSubject:

    @pytest.mark.parametrize("message,subject", [
        ("How does DNA replication work?", "cell biology"),
        ("Explain Newton's laws", "physics"),
        ("Help me with algebra", "mathematics"),
        ("Why did the Roman empire fall?", "history"),
        ("How do plants do photosynthesis?", "biology"),
    ])
    def test_keyword_subjects(self, message, subject):
        assert detect_subject(message, "tutor") == subject

    @pytest.mark.parametrize("agent,subject", [
        ("coding", "programming"),
        ("quiz", "educational"),
        ("study", "academic"),
        ("tutor", "learning"),
    ])
    def test_agent_fallback(self, agent, subject):
        assert detect_subject("hello there", agent) == subject


class TestRelevance:

    def test_title_match_beats_unrelated(self):
        relevant = Video(id="a", title="Photosynthesis explained", view_count="1000", like_count="10")
        unrelated = Video(id="b", title="Funny cats compilation", view_count="1000", like_count="10")

        assert score_relevance(relevant, "photosynthesis biology") > score_relevance(unrelated, "photosynthesis biology")

    def test_shorts_penalised(self):
        normal = Video(id="a", title="Photosynthesis lesson")
        short = Video(id="b", title="Photosynthesis lesson #shorts")
        assert score_relevance(normal, "photosynthesis") > score_relevance(short, "photosynthesis")

    def test_rank_orders_by_score_and_is_stable(self):
        videos = [
            Video(id="x", title="Cooking pasta"),
            Video(id="y", title="Calculus derivatives tutorial"),
            Video(id="z", title="Cooking rice"),
        ]
        ranked = rank_videos(videos, "calculus derivatives")

        assert [v.id for v in ranked] == ["y", "x", "z"]


class TestVideoDisplay:

    def test_display_fields(self):
        video = Video(id="a", title="Algebra", duration="PT1H2M3S", view_count="2500000",
                      published_at="2001-01-01T00:00:00Z")

        assert video.display_duration == "1:02:03"
        assert video.display_views == "2.5M"
        assert video.display_age.endswith("years ago")

    def test_unknown_publish_date(self):
        assert Video(id="a", title="Algebra").display_age == ""


class TestYouTubeClient:

    @pytest.mark.asyncio
    async def test_search_joins_statistics_by_id(self):
        seen = []
        handler = youtube_handler(
            [search_item("v1", "First"), search_item("v2", "Second")],
            # Returned in a different order than the search results
            [stats_item("v2", "2000", "20", "PT5M9S"), stats_item("v1", "1000", "10", "PT1H2M3S")],
            seen,
        )
        settings = Settings(youtube_api_key="yt-key")
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
            videos = await YouTubeClient(settings, http_client=http).search("photosynthesis", 3)

        assert [v.id for v in videos] == ["v1", "v2"]
        assert videos[0].duration == "PT1H2M3S"
        assert videos[0].view_count == "1000"
        assert videos[1].display_duration == "5:09"
        assert videos[0].url == "https://www.youtube.com/watch?v=v1"
        assert videos[0].thumbnail == "https://img.example/v1.jpg"

        search_params = seen[0].url.params
        assert search_params["type"] == "video"
        assert search_params["order"] == "relevance"
        assert search_params["videoDefinition"] == "high"
        assert search_params["videoDuration"] == "medium"
        assert search_params["key"] == "yt-key"
        assert seen[1].url.params["id"] == "v1,v2"

    @pytest.mark.asyncio
    async def test_missing_statistics_use_defaults(self):
        handler = youtube_handler([search_item("v1", "First")], [])
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
            videos = await YouTubeClient(Settings(), http_client=http).search("q")

        assert videos[0].view_count == "0"
        assert videos[0].like_count == "0"
        assert videos[0].duration == "PT0S"

    @pytest.mark.asyncio
    async def test_no_results_skips_statistics_call(self):
        seen = []
        handler = youtube_handler([], [], seen)
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
            videos = await YouTubeClient(Settings(), http_client=http).search("q")

        assert videos == []
        assert len(seen) == 1

    @pytest.mark.asyncio
    async def test_api_error(self):
        def handler(request):
            return httpx.Response(403, json={"error": {"message": "quota"}})

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
            with pytest.raises(UpstreamAPIError, match="YouTube API error: 403"):
                await YouTubeClient(Settings(), http_client=http).search("q")


class TestVideoSuggestionService:

    @pytest.mark.asyncio
    async def test_suggest_with_llm_keywords(self):
        llm = KeywordLLM(reply='"photosynthesis biology plants"')
        handler = youtube_handler(
            [search_item("v1", "Photosynthesis explained"), search_item("v2", "Random vlog")],
            [stats_item("v1", "5000", "100", "PT8M"), stats_item("v2", "5000", "100", "PT8M")],
        )
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
            service = VideoSuggestionService(llm, YouTubeClient(Settings(), http_client=http))
            history = [{"sender": "user", "content": f"turn {i}"} for i in range(8)]
            result = await service.suggest("How do plants make food?", history, agent="tutor", subject="biology")

        assert result.query == "photosynthesis biology plants education explained tutorial"
        assert result.extracted_keywords == "photosynthesis biology plants education"
        assert result.videos[0].id == "v1"

        call = llm.calls[0]
        assert call["temperature"] == 0.2
        assert call["max_tokens"] == 30
        # system prompt + last 5 history turns + latest message
        assert len(call["messages"]) == 7
        assert call["messages"][1] == {"role": "user", "content": "turn 3"}

        payload = result.to_dict()
        assert payload["success"] is True
        assert payload["originalMessage"] == "How do plants make food?"
        assert set(payload["videos"][0]) == {
            "id", "title", "description", "thumbnail", "channelTitle",
            "publishedAt", "url", "viewCount", "likeCount", "duration",
        }

    @pytest.mark.asyncio
    async def test_keyword_extraction_falls_back(self):
        llm = KeywordLLM(error=UpstreamAPIError("Groq API error: 500"))
        service = VideoSuggestionService(llm, YouTubeClient(Settings()))

        keywords = await service.extract_keywords("Explain quadratic equations please", [], "tutor")
        assert keywords == "explain quadratic equations"
