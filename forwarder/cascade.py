"""
Dial cascade controller.

Each webhook re-enters the controller with nothing but the call metadata,
the dial status and the attempt index round-tripped through the Dial
action URL. From those it decides the next directive:

    Idle -> Dialing(0) -> Dialing(1) -> ... -> Connected | Exhausted

Nothing about a call is stored here; the controller only holds the
read-only configuration and the notifier.
"""
from dataclasses import dataclass
from typing import Optional

from .config import CascadeConfig
from .directives import Directive, DialDirective, FallbackDirective, HangupDirective
from .notifier import ExhaustionNotifier, NotificationPayload
from .outcomes import classify_outcome
from .logging_config import (
    get_logger,
    log_dial_attempt,
    log_state_change,
    log_call_end,
)

logger = get_logger("cascade")


@dataclass(frozen=True)
class CallDetails:
    """Metadata Twilio sends with every voice webhook."""

    call_sid: str = ""
    from_number: str = ""
    to_number: str = ""

    @classmethod
    def from_form(cls, form) -> "CallDetails":
        return cls(
            call_sid=form.get("CallSid", "") or "",
            from_number=form.get("From", "") or "",
            to_number=form.get("To", "") or "",
        )


class CascadeController:
    def __init__(self, config: CascadeConfig, notifier: ExhaustionNotifier):
        self.config = config
        self.notifier = notifier

    @property
    def numbers(self):
        return self.config.numbers

    def _dial(self, call: CallDetails, attempt: int) -> DialDirective:
        # Callers guarantee 0 <= attempt < len(numbers)
        number = self.numbers[attempt]
        log_dial_attempt(call.call_sid, attempt, number, self.config.timeout_seconds)
        return DialDirective(number=number, attempt=attempt, timeout=self.config.timeout_seconds)

    def fallback_directive(self) -> FallbackDirective:
        return FallbackDirective(
            voicemail=self.config.voicemail_enabled,
            message=self.config.unavailable_message,
            max_length=self.config.voicemail_max_length,
            voice=self.config.voice,
        )

    def _exhaust(self, call: CallDetails, attempted: int, final_status: str) -> FallbackDirective:
        log_call_end(call.call_sid, connected=False, reason=f"all {attempted} number(s) unavailable")
        payload = NotificationPayload(
            call_sid=call.call_sid,
            from_number=call.from_number,
            to_number=call.to_number,
            attempted_numbers=self.numbers[:attempted],
            final_status=final_status,
        )
        # Scheduled, not awaited: the TwiML goes back to Twilio right away
        self.notifier.dispatch(payload)
        return self.fallback_directive()

    def start_cascade(self, call: CallDetails) -> Directive:
        """Handle the inbound transfer: dial the first number, or fall back if there is none."""
        if not self.numbers:
            logger.warning(
                "No forwarding numbers configured, going straight to fallback",
                extra={"call_sid": call.call_sid, "step": "start"},
            )
            log_state_change(call.call_sid, "idle", "exhausted", attempts=0)
            return self._exhaust(call, attempted=0, final_status="no-numbers-configured")

        log_state_change(call.call_sid, "idle", "dialing:0")
        return self._dial(call, 0)

    def advance_cascade(self, call: CallDetails, dial_status: Optional[str], attempt: int) -> Directive:
        """
        React to the outcome of the dial at index `attempt`.

        Connected ends the call-control interaction. Any other outcome,
        including an empty or unknown status, moves on to the next number,
        or to the fallback once the list is exhausted.
        """
        outcome = classify_outcome(dial_status)
        state = f"dialing:{attempt}"

        if outcome.is_connected:
            log_state_change(call.call_sid, state, "connected")
            log_call_end(call.call_sid, connected=True, reason=f"answered on attempt {attempt + 1}")
            return HangupDirective()

        if not 0 <= attempt < len(self.numbers):
            logger.warning(
                f"Rejecting out-of-range attempt index {attempt} "
                f"(have {len(self.numbers)} numbers), using fallback",
                extra={"call_sid": call.call_sid, "step": state},
            )
            return self.fallback_directive()

        next_attempt = attempt + 1
        if next_attempt < len(self.numbers):
            log_state_change(call.call_sid, state, f"dialing:{next_attempt}", outcome=outcome.value)
            return self._dial(call, next_attempt)

        log_state_change(call.call_sid, state, "exhausted", outcome=outcome.value)
        return self._exhaust(call, attempted=len(self.numbers), final_status=dial_status or outcome.value)
