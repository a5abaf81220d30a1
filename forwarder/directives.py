"""
Call-control directives emitted by the cascade and their TwiML rendering.

The controller decides *what* Twilio should do next and returns one of the
records below. Rendering to TwiML happens at the HTTP edge, where the public
base URL for callbacks is known.
"""
from dataclasses import dataclass
from typing import Optional, Union

from twilio.twiml.voice_response import VoiceResponse

HANDLE_RESULT_PATH = "/voice/handle-result"
SAVE_VOICEMAIL_PATH = "/voice/save-voicemail"
TRANSCRIPTION_PATH = "/voice/voicemail-transcription"


def handle_result_path(attempt: int) -> str:
    """Callback path that carries the attempt index back to us."""
    return f"{HANDLE_RESULT_PATH}?attempt={attempt}"


@dataclass(frozen=True)
class DialDirective:
    """Dial one candidate and report the outcome for `attempt`."""

    number: str
    attempt: int
    timeout: int

    @property
    def action_path(self) -> str:
        return handle_result_path(self.attempt)

    def to_twiml(self, base_url: str = "") -> VoiceResponse:
        response = VoiceResponse()
        dial = response.dial(
            action=f"{base_url}{self.action_path}",
            method="POST",
            timeout=self.timeout,
        )
        dial.number(self.number)
        return response


@dataclass(frozen=True)
class HangupDirective:
    """End the call-control interaction. Used after a successful bridge."""

    def to_twiml(self, base_url: str = "") -> VoiceResponse:
        response = VoiceResponse()
        response.hangup()
        return response


@dataclass(frozen=True)
class FallbackDirective:
    """
    Terminal response once the cascade is exhausted.

    In voicemail mode the caller hears `message` and is recorded; the
    recording and its transcription are posted to the voicemail callbacks.
    Without voicemail the call is simply hung up.
    """

    voicemail: bool
    message: str = ""
    max_length: int = 60
    voice: Optional[str] = None

    def to_twiml(self, base_url: str = "") -> VoiceResponse:
        response = VoiceResponse()
        if not self.voicemail:
            response.hangup()
            return response

        if self.message:
            if self.voice:
                response.say(self.message, voice=self.voice)
            else:
                response.say(self.message)
        response.record(
            max_length=self.max_length,
            action=f"{base_url}{SAVE_VOICEMAIL_PATH}",
            method="POST",
            transcribe=True,
            transcribe_callback=f"{base_url}{TRANSCRIPTION_PATH}",
        )
        return response


Directive = Union[DialDirective, HangupDirective, FallbackDirective]


def render(directive: Directive, base_url: str = "") -> str:
    """Render a directive as a TwiML document string."""
    return str(directive.to_twiml(base_url))
