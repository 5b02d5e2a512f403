"""
Agent Personas

The four fixed personas a conversation can run under. Each persona selects the
system prompt sent to the LLM and tunes how video searches are built.
"""

from dataclasses import dataclass
from typing import Dict, List


@dataclass(frozen=True)
class AgentPersona:
    """One persona configuration."""
    id: str
    name: str
    initials: str
    description: str
    system_prompt: str
    video_context: str  # What the persona's learners look for on YouTube
    video_enhancement: str  # Words appended to video queries
    fallback_subject: str  # Subject used when none is detected in the message


PERSONAS: Dict[str, AgentPersona] = {
    "tutor": AgentPersona(
        id="tutor",
        name="AI Tutor",
        initials="AT",
        description="Your comprehensive learning assistant for all subjects",
        system_prompt="You are an AI Tutor for students aged 6-18. Provide comprehensive explanations.",
        video_context="educational content for students, focusing on clear explanations and learning materials",
        video_enhancement="education explained tutorial",
        fallback_subject="learning",
    ),
    "study": AgentPersona(
        id="study",
        name="Study Agent",
        initials="SA",
        description="Detailed explanations and concept breakdowns",
        system_prompt="You are a Study Agent specialized in breaking down complex concepts.",
        video_context="study materials, academic concepts, and learning resources",
        video_enhancement="study guide academic",
        fallback_subject="academic",
    ),
    "coding": AgentPersona(
        id="coding",
        name="Coding Agent",
        initials="CA",
        description="Programming tutorials and coding assistance",
        system_prompt="You are a Coding Agent helping students learn programming.",
        video_context="programming tutorials, coding concepts, and software development",
        video_enhancement="programming tutorial code",
        fallback_subject="programming",
    ),
    "quiz": AgentPersona(
        id="quiz",
        name="Quiz Agent",
        initials="QA",
        description="Interactive quizzes and assessments",
        system_prompt="You are a Quiz Agent that creates engaging educational quizzes.",
        video_context="educational quizzes, test preparation, and assessment materials",
        video_enhancement="quiz test preparation",
        fallback_subject="educational",
    ),
}

DEFAULT_AGENT = "tutor"


def get_persona(agent: str) -> AgentPersona:
    """Resolve a persona id, falling back to the tutor for unknown ids."""
    return PERSONAS.get(agent or DEFAULT_AGENT, PERSONAS[DEFAULT_AGENT])


def welcome_message(agent: str) -> str:
    """Greeting shown (and optionally spoken) when a conversation opens."""
    return f"Hello! I'm your {get_persona(agent).name}. How can I help you learn today?"


def build_system_prompt(agent: str, reference_files: List[str] = None) -> str:
    """
    System prompt for a persona, optionally pointing at uploaded materials.

    Args:
        agent: Persona id
        reference_files: Names of uploaded study files

    Returns:
        Prompt text
    """
    prompt = get_persona(agent).system_prompt
    if reference_files:
        prompt += f"\n\nReference these materials: {', '.join(reference_files)}"
    return prompt
