"""Voice and text capture for a feedback prompt.

A prompt that offers both voice and text feedback has exactly one active
channel. The voice channel is driven by a small state machine (idle,
recording, recorded, playing) whose transitions are listed in
``TRANSITIONS``. Audio is produced by a recorder collaborator that is started
with a completion callback and may signal completion on its own, for example
when it hits its time limit.

Switching channel while recording stops the recorder and throws the
unfinished take away. A completion signal belonging to a take that has been
thrown away is ignored.

A ``VoiceTextCapture`` serves a single prompt. The feedback form only offers
voice for its main feedback prompt; free-text campaign questions are typed
answers and have no recording channel. Extending voice to those questions
would need one capture, and one stored recording, per question.

Typical usage example:
    capture = VoiceTextCapture(
        allow_voice=True, allow_text=True, recorder=recorder, on_change=owner
    )
    capture.start()
    capture.stop()
"""

from functools import partial
from typing import Any, Callable, Optional, Protocol, Union

from models.feedback import AudioBlob, CaptureState, FeedbackChannel
from utils.logging_utils import get_logger

logger = get_logger(__name__, level="INFO")

MAX_RECORDING_SECONDS = 300
CAPTURE_UNAVAILABLE = (
    "Audio recording is not available. Please allow microphone access "
    "or switch to text feedback."
)

LiveValue = Union[AudioBlob, str, None]
ChangeCallback = Callable[[FeedbackChannel, LiveValue], Any]

# (state, event) -> next state. "complete" with no audio returns to idle.
TRANSITIONS: dict[tuple[CaptureState, str], CaptureState] = {
    (CaptureState.IDLE, "start"): CaptureState.RECORDING,
    (CaptureState.RECORDING, "complete"): CaptureState.RECORDED,
    (CaptureState.RECORDING, "cancel"): CaptureState.IDLE,
    (CaptureState.RECORDED, "discard"): CaptureState.IDLE,
    (CaptureState.PLAYING, "discard"): CaptureState.IDLE,
    (CaptureState.RECORDED, "play"): CaptureState.PLAYING,
    (CaptureState.PLAYING, "pause"): CaptureState.RECORDED,
}


class AudioRecorder(Protocol):
    """The audio capture collaborator."""

    def start(self, on_complete: Callable[[Optional[AudioBlob]], Any]) -> None:
        """Begin capturing. ``on_complete`` receives the blob, or None."""

    def stop(self) -> None:
        """Ask the recorder to finish; it then calls ``on_complete``."""


class BrowserRecorder:
    """Recorder stand-in for audio captured in the customer's browser.

    The browser owns the microphone, so starting and stopping are
    acknowledgements only. The uploaded recording is delivered to the capture
    engine with ``VoiceTextCapture.complete``.
    """

    def start(self, on_complete: Callable[[Optional[AudioBlob]], Any]) -> None:
        """Acknowledge that the browser started recording."""

    def stop(self) -> None:
        """Acknowledge that the browser stopped recording."""


class VoiceTextCapture:  # pylint: disable=too-many-instance-attributes
    """Channel selection and voice capture for one prompt.

    The owner is notified through ``on_change(channel, value)`` every time the
    live value of the prompt changes: the blob (or None) on the voice channel,
    the text on the text channel.
    """

    def __init__(  # noqa: PLR0913 pylint: disable=too-many-arguments
        self,
        allow_voice: bool,
        allow_text: bool,
        recorder: AudioRecorder,
        on_change: Optional[ChangeCallback] = None,
        *,
        channel: Optional[FeedbackChannel] = None,
        state: CaptureState = CaptureState.IDLE,
        blob: Optional[AudioBlob] = None,
        text: str = "",
    ):
        """Initialises the capture engine, optionally restoring earlier state.

        Args:
            allow_voice: Whether the voice channel is offered.
            allow_text: Whether the text channel is offered.
            recorder: The audio capture collaborator.
            on_change: Owner callback for live value changes.
            channel: Active channel; defaults to voice when it is allowed.
            state: Restored capture state.
            blob: Restored finalised recording.
            text: Restored text feedback.
        """
        self.allow_voice = allow_voice
        self.allow_text = allow_text
        self._recorder = recorder
        self._on_change = on_change
        if channel is None:
            channel = FeedbackChannel.VOICE if allow_voice else FeedbackChannel.TEXT
        self.channel = channel
        self.state = state
        self.blob = blob
        self.text = text
        self.error: Optional[str] = None
        self._take = 0

    @property
    def live_value(self) -> LiveValue:
        """The value that would be submitted for this prompt right now."""
        if self.channel == FeedbackChannel.VOICE:
            return self.blob
        return self.text

    def _notify(self) -> None:
        if self._on_change is not None:
            self._on_change(self.channel, self.live_value)

    def _transition(self, event: str) -> bool:
        next_state = TRANSITIONS.get((self.state, event))
        if next_state is None:
            logger.debug(f"capture event '{event}' ignored in state {self.state.value}")
            return False
        logger.debug(f"capture {self.state.value} --{event}--> {next_state.value}")
        self.state = next_state
        return True

    def start(self) -> bool:
        """Start recording on the voice channel.

        Returns:
            bool: True if recording started. On a recorder failure the engine
            stays idle and ``error`` holds a message for the customer.
        """
        if not self.allow_voice or self.channel != FeedbackChannel.VOICE:
            logger.warning("capture start refused - voice channel not active")
            return False
        if not self._transition("start"):
            return False

        self._take += 1
        self.error = None
        try:
            self._recorder.start(partial(self.complete, take=self._take))
        except (OSError, RuntimeError) as err:
            logger.warning(f"audio capture unavailable: {err}")
            self.state = CaptureState.IDLE
            self.error = CAPTURE_UNAVAILABLE
            return False
        return True

    def stop(self) -> None:
        """Ask the recorder to finish the current take.

        The transition to recorded happens when the recorder delivers the
        take through ``complete``. Stopping when not recording does nothing,
        which covers a completion signal that arrived first.
        """
        if self.state != CaptureState.RECORDING:
            logger.debug(f"capture stop ignored in state {self.state.value}")
            return
        self._recorder.stop()

    def complete(self, blob: Optional[AudioBlob], take: Optional[int] = None) -> bool:
        """Accept the recorder's completion signal.

        Args:
            blob: The finalised recording, or None if nothing was captured.
            take: The take the signal belongs to; None means the current one.

        Returns:
            bool: True if the signal was applied.
        """
        if take is not None and take != self._take:
            logger.debug(f"stale recording for take {take} ignored")
            return False
        if self.state != CaptureState.RECORDING:
            logger.debug(f"recording completion ignored in state {self.state.value}")
            return False

        if blob is None or not blob.data:
            self._transition("cancel")
            return True

        self._transition("complete")
        self.blob = blob
        logger.info(f"recording complete - {blob.size} bytes")
        self._notify()
        return True

    def finalize(self) -> Optional[AudioBlob]:
        """Finish any take in progress, keeping its audio.

        Returns:
            The finalised recording, or None.
        """
        if self.state == CaptureState.RECORDING:
            self.stop()
            if self.state == CaptureState.RECORDING:
                # Recorder did not deliver the take synchronously
                self._take += 1
                self._transition("cancel")
        return self.blob

    def discard(self) -> bool:
        """Throw away the finalised recording and tell the owner."""
        if not self._transition("discard"):
            return False
        self.blob = None
        self._notify()
        return True

    def play(self) -> bool:
        """Start local playback. The live value is unchanged."""
        return self._transition("play")

    def pause(self) -> bool:
        """Pause local playback. The live value is unchanged."""
        return self._transition("pause")

    def set_text(self, text: str) -> bool:
        """Update the text feedback on the text channel."""
        if not self.allow_text or self.channel != FeedbackChannel.TEXT:
            logger.debug("text ignored - text channel not active")
            return False
        if text == self.text:
            return False
        self.text = text
        self._notify()
        return True

    def switch_channel(self, channel: FeedbackChannel) -> bool:
        """Make ``channel`` the active channel.

        A take in progress is stopped and thrown away before the switch
        completes. Playback is paused. A finalised recording is kept.

        Returns:
            bool: True if the active channel changed.
        """
        allowed = (
            self.allow_voice if channel == FeedbackChannel.VOICE else self.allow_text
        )
        if not allowed:
            logger.warning(f"channel '{channel.value}' is not offered for this prompt")
            return False
        if channel == self.channel:
            return False

        if self.state == CaptureState.RECORDING:
            # Invalidate the take first so its completion is ignored
            self._take += 1
            self._recorder.stop()
            self._transition("cancel")
            logger.info("recording stopped and discarded by channel switch")
        elif self.state == CaptureState.PLAYING:
            self._transition("pause")

        self.channel = channel
        self._notify()
        return True

    def handle(self, event: str) -> bool:
        """Apply a named user event (start, stop, discard, play, pause)."""
        actions: dict[str, Callable[[], Any]] = {
            "start": self.start,
            "stop": self.stop,
            "discard": self.discard,
            "play": self.play,
            "pause": self.pause,
        }
        if event not in actions:
            raise ValueError(f"Unknown capture event: {event}")
        result = actions[event]()
        return result is not False
