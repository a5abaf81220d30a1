import re

from fastapi import APIRouter, BackgroundTasks, Depends, Request
from fastapi.responses import Response

from .config import get_base_url_from_request
from .cascade import CallDetails, CascadeController
from .directives import Directive, render
from .voicemail import handle_recording, handle_transcription, send_voicemail_email
from .logging_config import get_logger, log_call_start, log_error

logger = get_logger("twilio")

router = APIRouter()

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def get_controller(request: Request) -> CascadeController:
    """The process-wide controller, built once in main.py."""
    return request.app.state.controller


def parse_attempt(raw) -> int:
    """
    Read the attempt index from the Dial action URL.

    Like parseInt, the leading integer wins ("2abc" -> 2, "1.5" -> 1).
    Missing or non-numeric values count as the first attempt. Digits too
    long to convert come back as -1 so the controller rejects them;
    range checking against the number list is the controller's job.
    """
    if raw is None:
        return 0
    match = _LEADING_INT.match(str(raw))
    if not match:
        if raw != "":
            logger.warning(f"Ignoring malformed attempt index {raw!r}, using 0")
        return 0
    try:
        return int(match.group(1))
    except ValueError:
        logger.warning(f"Attempt index with {len(match.group(1))} digits is out of range")
        return -1


def _twiml(content: str) -> Response:
    return Response(content=content, media_type="application/xml")


def _render_for(request: Request, directive: Directive) -> Response:
    return _twiml(render(directive, get_base_url_from_request(request)))


@router.post("/voice/start")
async def voice_start(request: Request, controller: CascadeController = Depends(get_controller)):
    """Entry point when the voice agent transfers the caller to us."""
    call = CallDetails()
    try:
        form_data = await request.form()
        call = CallDetails.from_form(form_data)
        log_call_start(call.call_sid, call.from_number, call.to_number)

        directive = controller.start_cascade(call)
        return _render_for(request, directive)

    except Exception as e:
        # Critical error handler - the caller still gets the fallback, never a dropped call
        log_error(call.call_sid, e, step="voice_start", context="Critical error starting cascade")
        return _render_for(request, controller.fallback_directive())


@router.post("/voice/handle-result")
async def voice_handle_result(request: Request, controller: CascadeController = Depends(get_controller)):
    """Twilio posts the <Dial> outcome here; decide the next hop."""
    call = CallDetails()
    try:
        form_data = await request.form()
        call = CallDetails.from_form(form_data)
        dial_status = form_data.get("DialCallStatus", "")
        attempt = parse_attempt(request.query_params.get("attempt"))

        logger.info(
            f"📊 Dial result - Attempt {attempt + 1}: {dial_status or '(missing)'}",
            extra={"call_sid": call.call_sid, "step": f"dialing:{attempt}"},
        )

        directive = controller.advance_cascade(call, dial_status, attempt)
        return _render_for(request, directive)

    except Exception as e:
        log_error(call.call_sid, e, step="handle_result", context="Critical error advancing cascade")
        return _render_for(request, controller.fallback_directive())


@router.post("/voice/save-voicemail")
async def save_voicemail(request: Request):
    """Recording finished: thank the caller and hang up."""
    form_data = await request.form()
    response = handle_recording(
        form_data.get("CallSid", ""),
        form_data.get("RecordingUrl", ""),
        form_data.get("RecordingDuration", ""),
    )
    return _twiml(str(response))


@router.post("/voice/voicemail-transcription")
async def voicemail_transcription(request: Request, background_tasks: BackgroundTasks):
    """Transcription is ready. Twilio only needs a 200 back."""
    form_data = await request.form()
    call_sid = form_data.get("CallSid", "")
    caller = form_data.get("From", "")
    recording_url = form_data.get("RecordingUrl", "")

    text = handle_transcription(call_sid, form_data.get("TranscriptionText"), caller, recording_url)
    # SendGrid is a blocking client; run it after the response goes out
    background_tasks.add_task(send_voicemail_email, call_sid, caller, text, recording_url)
    return Response(status_code=200)
