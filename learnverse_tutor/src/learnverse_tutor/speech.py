"""
Speech Capabilities

Small interfaces the conversation session talks to instead of platform objects:
speech recognition, microphone permission and access, speech synthesis and
audio playback. The session picks its recognizer once at construction; when
the platform has none, UnsupportedRecognizer stands in.
"""

import base64
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional

import httpx

from learnverse_tutor.config import Settings
from learnverse_tutor.errors import RecognizerUnavailable, UpstreamAPIError

logger = logging.getLogger(__name__)


class MicrophonePermission(Enum):
    GRANTED = "granted"
    DENIED = "denied"
    PROMPT = "prompt"


@dataclass
class RecognitionResult:
    transcript: str
    is_final: bool


ResultCallback = Callable[[RecognitionResult], None]
ErrorCallback = Callable[[str], None]
EndCallback = Callable[[], None]


class SpeechRecognizer(ABC):
    """
    Native speech-to-text engine.

    Events are delivered through the callbacks given to `bind`: results
    (interim and final), error codes such as "no-speech", "audio-capture" or
    "not-allowed", and the end of a recognition run.
    """

    def __init__(self):
        self.on_result: Optional[ResultCallback] = None
        self.on_error: Optional[ErrorCallback] = None
        self.on_end: Optional[EndCallback] = None

    @property
    def available(self) -> bool:
        return True

    def bind(self, on_result: ResultCallback, on_error: ErrorCallback, on_end: EndCallback) -> None:
        self.on_result = on_result
        self.on_error = on_error
        self.on_end = on_end

    @abstractmethod
    def start(self, continuous: bool, interim_results: bool, language: str) -> None:
        """Begin a recognition run."""

    @abstractmethod
    def stop(self) -> None:
        """End the current run; the engine still reports its end event."""


class UnsupportedRecognizer(SpeechRecognizer):
    """Used when the platform has no speech recognition."""

    @property
    def available(self) -> bool:
        return False

    def start(self, continuous: bool, interim_results: bool, language: str) -> None:
        raise RecognizerUnavailable("Speech recognition not supported in this browser")

    def stop(self) -> None:
        pass


class PermissionQuery(ABC):
    """Platform permission state for the microphone, with change notifications."""

    @abstractmethod
    def query(self) -> MicrophonePermission:
        ...

    @abstractmethod
    def subscribe(self, callback: Callable[[MicrophonePermission], None]) -> Callable[[], None]:
        """Register for changes; returns a function that unsubscribes."""


class StaticPermissionQuery(PermissionQuery):
    """In-memory permission state; `set` notifies subscribers."""

    def __init__(self, state: MicrophonePermission = MicrophonePermission.PROMPT):
        self.state = state
        self._listeners: List[Callable[[MicrophonePermission], None]] = []

    def query(self) -> MicrophonePermission:
        return self.state

    def subscribe(self, callback: Callable[[MicrophonePermission], None]) -> Callable[[], None]:
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def set(self, state: MicrophonePermission) -> None:
        self.state = state
        for listener in list(self._listeners):
            listener(state)


class MicrophoneAccess(ABC):
    @abstractmethod
    async def request_access(self) -> None:
        """Prompt for the microphone; raises MicrophoneAccessDenied on refusal."""


class SpeechOutputSink(ABC):
    @abstractmethod
    async def synthesize(self, text: str) -> bytes:
        """Return encoded audio for the text."""


class PlaybackHandle(ABC):
    @abstractmethod
    def stop(self) -> None:
        """Stop playback; the finished callback is not invoked."""


class AudioPlayer(ABC):
    @abstractmethod
    def play(self, audio: bytes, on_finished: Callable[[], None]) -> PlaybackHandle:
        """Start playing; `on_finished` fires when playback ends naturally."""


class LocalSpeechSynthesizer(ABC):
    """Platform voice used when remote synthesis fails."""

    @abstractmethod
    def speak(self, text: str) -> None:
        ...


@dataclass(frozen=True)
class VoiceParams:
    language_code: str = "en-US"
    name: str = "en-US-Standard-D"
    ssml_gender: str = "MALE"
    audio_encoding: str = "MP3"
    speaking_rate: float = 1.0
    pitch: float = 0.0
    volume_gain_db: float = 0.0


class GoogleTextToSpeech(SpeechOutputSink):
    """Google Cloud Text-to-Speech over REST."""

    def __init__(
        self,
        settings: Settings,
        voice: Optional[VoiceParams] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = settings.tts_api_key
        self.url = settings.tts_url
        self.voice = voice or VoiceParams()
        self.http_client = http_client

    def build_request(self, text: str) -> dict:
        return {
            "input": {"text": text},
            "voice": {
                "languageCode": self.voice.language_code,
                "name": self.voice.name,
                "ssmlGender": self.voice.ssml_gender,
            },
            "audioConfig": {
                "audioEncoding": self.voice.audio_encoding,
                "speakingRate": self.voice.speaking_rate,
                "pitch": self.voice.pitch,
                "volumeGainDb": self.voice.volume_gain_db,
            },
        }

    async def synthesize(self, text: str) -> bytes:
        payload = self.build_request(text)
        params = {"key": self.api_key}
        if self.http_client is not None:
            response = await self.http_client.post(self.url, params=params, json=payload)
        else:
            async with httpx.AsyncClient() as client:
                response = await client.post(self.url, params=params, json=payload)

        if response.status_code != 200:
            raise UpstreamAPIError("TTS API error", status_code=response.status_code)
        audio_content = response.json().get("audioContent")
        if not audio_content:
            raise UpstreamAPIError("TTS response contained no audio")
        return base64.b64decode(audio_content)
