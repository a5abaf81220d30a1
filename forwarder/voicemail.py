"""Voicemail sink: recording and transcription callbacks from the fallback <Record>."""
import os
from typing import Optional

from twilio.twiml.voice_response import VoiceResponse

from .config import TTS_VOICE
from .logging_config import get_logger, log_external_service

logger = get_logger("voicemail")

GOODBYE_MESSAGE = "Thank you for your message. Goodbye."


def handle_recording(call_sid: str, recording_url: str, duration: str = "") -> VoiceResponse:
    """Log the finished recording and thank the caller."""
    logger.info(
        f"📧 Voicemail recorded ({duration or '?'}s): {recording_url or '(no url)'}",
        extra={"call_sid": call_sid, "step": "voicemail",
               "extra_data": {"recording_url": recording_url, "duration": duration}},
    )

    response = VoiceResponse()
    response.say(GOODBYE_MESSAGE, voice=TTS_VOICE or None)
    response.hangup()
    return response


def build_voicemail_email(call_sid: str, caller: str, transcription: str, recording_url: str):
    subject = f"New voicemail from {caller or 'unknown caller'}"
    body = f"""A caller could not reach anyone and left a voicemail.

Caller: {caller or 'unknown'}
Call SID: {call_sid}
Recording: {recording_url or 'n/a'}

Transcription:
{transcription or '(no transcription available)'}
"""
    return subject, body


def send_voicemail_email(call_sid: str, caller: str, transcription: str,
                         recording_url: str = "") -> bool:
    """
    Email the voicemail transcription.

    In dev mode (no SENDGRID_API_KEY or VOICEMAIL_EMAIL_TO), logs to console instead.

    Returns:
        True if email was sent (or logged), False on error
    """
    sendgrid_key = os.getenv("SENDGRID_API_KEY")
    to_email = os.getenv("VOICEMAIL_EMAIL_TO")
    subject, body = build_voicemail_email(call_sid, caller, transcription, recording_url)

    if not sendgrid_key or not to_email:
        logger.info(f"[DEV MODE] Voicemail email not configured, transcription: {transcription!r}",
                    extra={"call_sid": call_sid})
        logger.debug(f"Subject: {subject}")
        return True

    try:
        from sendgrid import SendGridAPIClient
        from sendgrid.helpers.mail import Mail

        message = Mail(
            from_email=os.getenv("SENDGRID_FROM_EMAIL", "noreply@example.com"),
            to_emails=to_email,
            subject=subject,
            plain_text_content=body
        )

        sg = SendGridAPIClient(sendgrid_key)
        response = sg.send(message)

        ok = response.status_code in [200, 201, 202]
        log_external_service("sendgrid", "voicemail email", success=ok,
                             call_sid=call_sid, status_code=response.status_code)
        return ok

    except Exception as e:
        log_external_service("sendgrid", "voicemail email", success=False,
                             call_sid=call_sid, error=f"{type(e).__name__}: {e}")
        return False


def handle_transcription(call_sid: str, transcription: Optional[str], caller: str = "",
                         recording_url: str = "") -> str:
    """Log the transcription text and return it normalized."""
    text = (transcription or "").strip()
    logger.info(
        f"📝 Voicemail transcription: {text or '(empty)'}",
        extra={"call_sid": call_sid, "step": "voicemail",
               "extra_data": {"caller": caller, "recording_url": recording_url}},
    )
    return text
