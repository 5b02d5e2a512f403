"""
Conversation Session

Client-side controller for one conversation view. Owns the message log, the
pending-input buffer, voice capture, spoken replies and the request cycle to
the chat backend.

Everything runs on one asyncio event loop. A request suspends only while it
awaits a collaborator, and the loading flag keeps a second chat request from
starting while one is in flight.

Voice capture states:
    idle -> requesting-permission -> listening -> idle
Every way out of `listening` (final result, error, timeout, user stop) goes
through `_finish_capture`, which clears the listening flag and drops a
leftover placeholder from the buffer.
"""

import asyncio
import logging
from enum import Enum
from typing import Callable, List, Optional, Sequence, Set

from learnverse_tutor.agents import get_persona, welcome_message
from learnverse_tutor.config import SessionConfig
from learnverse_tutor.errors import ChatBackendError
from learnverse_tutor.messages import Message, Sender, to_transcript
from learnverse_tutor.speech import (
    AudioPlayer,
    LocalSpeechSynthesizer,
    MicrophoneAccess,
    MicrophonePermission,
    PermissionQuery,
    PlaybackHandle,
    RecognitionResult,
    SpeechOutputSink,
    SpeechRecognizer,
    UnsupportedRecognizer,
)
from learnverse_tutor.study_files import StudyFile
from learnverse_tutor.video_suggestions import Video, VideoSuggestions, detect_subject

logger = logging.getLogger(__name__)


SPEECH_ERROR_MESSAGES = {
    "no-speech": "No speech detected. Try speaking louder or closer to the microphone.",
    "audio-capture": "No microphone found. Ensure a microphone is connected.",
    "not-allowed": "Microphone access blocked. Please allow microphone access in your browser settings.",
}
PERMISSION_KNOWN_DENIED = "Microphone access denied. Please update browser settings."
PERMISSION_REQUEST_DENIED = "Microphone access denied"
RECOGNIZER_UNSUPPORTED = "Speech recognition not supported in this browser"


def speech_error_message(code: str) -> str:
    return SPEECH_ERROR_MESSAGES.get(code, f"Error: {code}. Please try again.")


def chat_error_message(error: Exception) -> str:
    """User-facing text for a failed chat request (`details || error`)."""
    if isinstance(error, ChatBackendError):
        detail = error.user_message
    else:
        detail = str(error)
    if not detail:
        return "Sorry, I encountered an error. Please try again."
    return f"Sorry, I encountered an error: {detail}. Please try again."


class CaptureState(Enum):
    IDLE = "idle"
    REQUESTING_PERMISSION = "requesting-permission"
    LISTENING = "listening"


class ConversationSession:
    """
    State and operations of one conversation.

    Collaborators are injected so the session runs without a browser: the chat
    backend (anything with `async send(message, agent, history, reference_files)`), speech
    output, recognizer, microphone access, permission query and video
    suggestions are all optional except the chat backend.
    """

    def __init__(
        self,
        agent: str,
        chat_backend,
        *,
        speech_sink: Optional[SpeechOutputSink] = None,
        audio_player: Optional[AudioPlayer] = None,
        local_synthesizer: Optional[LocalSpeechSynthesizer] = None,
        recognizer: Optional[SpeechRecognizer] = None,
        microphone: Optional[MicrophoneAccess] = None,
        permissions: Optional[PermissionQuery] = None,
        video_suggester=None,
        uploaded_files: Optional[Sequence[StudyFile]] = None,
        on_progress: Optional[Callable[[int], None]] = None,
        speech_enabled: bool = False,
        welcome: bool = True,
        config: Optional[SessionConfig] = None,
    ):
        self.agent = get_persona(agent).id
        self.chat_backend = chat_backend
        self.speech_sink = speech_sink
        self.audio_player = audio_player
        self.local_synthesizer = local_synthesizer
        self.microphone = microphone
        self.permissions = permissions
        self.video_suggester = video_suggester
        # Owned by the caller; read on every submission
        self.uploaded_files = uploaded_files if uploaded_files is not None else []
        self.on_progress = on_progress
        self.config = config or SessionConfig()

        # Conversation
        self.messages: List[Message] = []
        self.input = ""
        self.is_loading = False
        self.progress = 0

        # Speech output
        self.speech_enabled = speech_enabled
        self.is_playing_audio = False
        self._playback: Optional[PlaybackHandle] = None
        self._speech_generation = 0
        self._speech_tasks: Set[asyncio.Future] = set()

        # Speech input
        self.recognizer = recognizer or UnsupportedRecognizer()
        self.recognizer.bind(self._on_result, self._on_error, self._on_end)
        self.capture_state = CaptureState.IDLE
        self.permission = MicrophonePermission.PROMPT
        self.speech_error = ""
        self._user_stopped = False
        self._capture_timer: Optional[asyncio.TimerHandle] = None
        self._error_timer: Optional[asyncio.TimerHandle] = None
        self._unsubscribe_permission: Optional[Callable[[], None]] = None

        # Video suggestions
        self.videos: List[Video] = []
        self.video_error: Optional[str] = None
        self.videos_loading = False

        if welcome:
            self.messages.append(Message(
                content=welcome_message(self.agent),
                sender=Sender.AGENT,
                agent=self.agent,
                show_welcome_audio=True,
            ))

    @property
    def is_listening(self) -> bool:
        return self.capture_state is CaptureState.LISTENING

    @property
    def is_speech_supported(self) -> bool:
        return self.recognizer.available

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Read microphone permission, follow its changes, and greet."""
        if self.permissions is not None:
            try:
                self.permission = self.permissions.query()
                self._unsubscribe_permission = self.permissions.subscribe(self._on_permission_change)
            except Exception as e:
                logger.error(f"❌ [ConversationSession] Error checking microphone permissions: {e}")

        if self.speech_enabled and any(m.show_welcome_audio for m in self.messages):
            self._spawn_speech(self.play_welcome())

    async def close(self) -> None:
        """Release the recognizer, playback, timers and listeners."""
        if self.capture_state is not CaptureState.IDLE:
            self._user_stopped = True
            self.recognizer.stop()
            self._finish_capture()
        self._cancel_timer("_error_timer")
        self._stop_playback()
        self._speech_generation += 1

        if self._unsubscribe_permission is not None:
            self._unsubscribe_permission()
            self._unsubscribe_permission = None

        pending = [task for task in self._speech_tasks if not task.done()]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        self._speech_tasks.clear()

    def _on_permission_change(self, state: MicrophonePermission) -> None:
        logger.info(f"🎤 [ConversationSession] Microphone permission changed: {state.value}")
        self.permission = state

    # ------------------------------------------------------------------
    # Chat
    # ------------------------------------------------------------------

    def set_input(self, text: str) -> None:
        self.input = text

    async def submit(self, text: Optional[str] = None) -> Optional[Message]:
        """
        Send user text to the chat backend.

        Args:
            text: Message text; defaults to the pending-input buffer

        Returns:
            The agent message appended (a reply or an error message), or None
            if the submission was ignored
        """
        content = (self.input if text is None else text).strip()
        if not content or self.is_loading:
            return None

        history = to_transcript(self.messages, self.config.history_window)
        self.messages.append(Message(content=content, sender=Sender.USER, agent=self.agent))
        self.input = ""
        self.is_loading = True

        try:
            reply = await self.chat_backend.send(content, self.agent, history, self.reference_files())
            if not isinstance(reply, str) or not reply:
                raise ChatBackendError("Invalid response format from server")
        except Exception as e:
            logger.error(f"❌ [ConversationSession] Chat request failed: {e}")
            error_message = Message(
                content=chat_error_message(e),
                sender=Sender.AGENT,
                agent=self.agent,
                is_error=True,
            )
            self.messages.append(error_message)
            return error_message
        finally:
            self.is_loading = False

        agent_message = Message(content=reply, sender=Sender.AGENT, agent=self.agent)
        self.messages.append(agent_message)

        if self.speech_enabled:
            self._spawn_speech(self.speak(reply))

        self.progress = min(self.progress + self.config.progress_step, self.config.progress_cap)
        if self.on_progress is not None:
            self.on_progress(self.progress)
        return agent_message

    def reference_files(self) -> Optional[List[str]]:
        """Names of the uploaded study files, sent so the agent can refer to them."""
        return [f.name for f in self.uploaded_files] or None

    # ------------------------------------------------------------------
    # Speech output
    # ------------------------------------------------------------------

    def toggle_speech(self) -> bool:
        """Flip speech output; stops anything currently playing."""
        self.speech_enabled = not self.speech_enabled
        if self.is_playing_audio or self._playback is not None:
            self._stop_playback()
            # Discard any synthesis still in flight
            self._speech_generation += 1
        return self.speech_enabled

    async def speak(self, text: str) -> None:
        """Speak an agent reply if speech output is enabled."""
        if not self.speech_enabled:
            return
        await self._play(text)

    async def play_welcome(self) -> None:
        """Speak the greeting and hide its play affordance."""
        for message in self.messages:
            if message.show_welcome_audio:
                message.show_welcome_audio = False
                await self._play(message.content)
                return

    async def _play(self, text: str) -> None:
        self._stop_playback()
        self._speech_generation += 1
        generation = self._speech_generation
        self.is_playing_audio = True

        try:
            if self.speech_sink is None or self.audio_player is None:
                raise RuntimeError("No speech output configured")
            audio = await self.speech_sink.synthesize(text)
            if generation != self._speech_generation:
                return
            self._playback = self.audio_player.play(audio, lambda: self._on_playback_finished(generation))
        except Exception as e:
            logger.warning(f"⚠️ [ConversationSession] TTS failed, using local voice: {e}")
            if generation == self._speech_generation:
                self.is_playing_audio = False
                self._playback = None
                self._speak_locally(text)

    def _speak_locally(self, text: str) -> None:
        if self.local_synthesizer is None:
            return
        try:
            self.local_synthesizer.speak(text)
        except Exception as e:
            logger.warning(f"⚠️ [ConversationSession] Local speech synthesis failed: {e}")

    def _on_playback_finished(self, generation: int) -> None:
        if generation == self._speech_generation:
            self.is_playing_audio = False
            self._playback = None

    def _stop_playback(self) -> None:
        if self._playback is not None:
            self._playback.stop()
            self._playback = None
        self.is_playing_audio = False

    def _spawn_speech(self, coro) -> None:
        task = asyncio.ensure_future(coro)
        self._speech_tasks.add(task)
        task.add_done_callback(self._speech_tasks.discard)

    # ------------------------------------------------------------------
    # Speech input
    # ------------------------------------------------------------------

    async def start_voice_capture(self) -> bool:
        """
        Start listening for one utterance.

        Returns:
            True if the recognizer was started
        """
        if not self.recognizer.available:
            self._show_error(RECOGNIZER_UNSUPPORTED)
            return False
        if self.capture_state is not CaptureState.IDLE:
            return False
        if self.permission is MicrophonePermission.DENIED:
            self._show_error(PERMISSION_KNOWN_DENIED)
            return False

        self.capture_state = CaptureState.REQUESTING_PERMISSION
        if self.microphone is not None:
            try:
                await self.microphone.request_access()
            except Exception as e:
                logger.warning(f"⚠️ [ConversationSession] Microphone access denied: {e}")
                self.permission = MicrophonePermission.DENIED
                self.capture_state = CaptureState.IDLE
                self._show_error(PERMISSION_REQUEST_DENIED)
                return False
            self.permission = MicrophonePermission.GRANTED

        if self.capture_state is not CaptureState.REQUESTING_PERMISSION:
            # Closed while waiting for the prompt
            return False

        self._clear_error()
        self._user_stopped = False
        self.capture_state = CaptureState.LISTENING
        self.input = self.config.listening_placeholder
        try:
            self.recognizer.start(
                continuous=False,
                interim_results=True,
                language=self.config.language,
            )
        except Exception as e:
            logger.error(f"❌ [ConversationSession] Error starting recognition: {e}")
            self._finish_capture()
            return False

        if self.is_listening:
            self._capture_timer = self._schedule(self.config.capture_timeout_seconds, self._on_capture_timeout)
        logger.info("🎤 [ConversationSession] Speech recognition started")
        return True

    def stop_voice_capture(self) -> None:
        """User-initiated stop."""
        if not self.is_listening:
            return
        self._user_stopped = True
        self.recognizer.stop()
        self._finish_capture()

    def _on_capture_timeout(self) -> None:
        self._capture_timer = None
        if self.is_listening:
            logger.info("⏱️ [ConversationSession] Voice capture timed out")
            self.stop_voice_capture()
        self._finish_capture()

    def _on_result(self, result: RecognitionResult) -> None:
        if result.is_final:
            self.input = result.transcript
            self._finish_capture()
        elif self.is_listening:
            self.input = result.transcript + self.config.interim_suffix

    def _on_error(self, code: str) -> None:
        logger.warning(f"⚠️ [ConversationSession] Speech recognition error: {code}")
        self._finish_capture()

        if code != "no-speech" or not self._user_stopped:
            if code == "not-allowed":
                self.permission = MicrophonePermission.DENIED
            self._show_error(speech_error_message(code))
        if code == "no-speech":
            self.input = ""

    def _on_end(self) -> None:
        self._finish_capture()

    def _finish_capture(self) -> None:
        self._cancel_timer("_capture_timer")
        self.capture_state = CaptureState.IDLE
        if self.input == self.config.listening_placeholder:
            self.input = ""

    # ------------------------------------------------------------------
    # Error banner and timers
    # ------------------------------------------------------------------

    def _show_error(self, message: str) -> None:
        self.speech_error = message
        self._cancel_timer("_error_timer")
        self._error_timer = self._schedule(self.config.error_clear_seconds, self._clear_error)

    def _clear_error(self) -> None:
        self._cancel_timer("_error_timer")
        self.speech_error = ""

    def _cancel_timer(self, name: str) -> None:
        timer = getattr(self, name)
        if timer is not None:
            timer.cancel()
            setattr(self, name, None)

    @staticmethod
    def _schedule(delay: float, callback: Callable[[], None]) -> Optional[asyncio.TimerHandle]:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop; timer not scheduled")
            return None
        return loop.call_later(delay, callback)

    # ------------------------------------------------------------------
    # Video suggestions
    # ------------------------------------------------------------------

    async def suggest_videos(self, subject: Optional[str] = None) -> Optional[VideoSuggestions]:
        """
        Fetch videos for the latest user message.

        Failures are recorded in `video_error`; the message log is untouched.
        """
        if self.video_suggester is None:
            return None
        last_user = next((m for m in reversed(self.messages) if m.sender is Sender.USER), None)
        if last_user is None:
            return None

        subject = subject or detect_subject(last_user.content, self.agent)
        history = [
            {"sender": m.sender.value, "content": m.content}
            for m in self.messages[-self.config.video_history_window:]
        ]
        self.video_error = None
        self.videos_loading = True
        try:
            result = await self.video_suggester.suggest(last_user.content, self.agent, history, subject)
        except Exception as e:
            logger.error(f"❌ [ConversationSession] Error fetching video suggestions: {e}")
            self.video_error = str(e) or "Failed to fetch videos"
            return None
        finally:
            self.videos_loading = False

        self.videos = result.videos
        return result
