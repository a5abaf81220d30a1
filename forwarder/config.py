import os
from dataclasses import dataclass
from typing import Optional, Tuple
from dotenv import load_dotenv
import logging

load_dotenv()

# Application base URL for Twilio callbacks (Dial action, Record action, etc.)
# Set this to your ngrok URL locally or your production domain in cloud deployments
APP_BASE_URL = os.getenv("APP_BASE_URL", "http://localhost:8000").rstrip("/")

DEFAULT_DIAL_TIMEOUT = 20

FALLBACK_VOICEMAIL = "voicemail"
FALLBACK_HANGUP = "hangup"
FALLBACK_MODES = (FALLBACK_VOICEMAIL, FALLBACK_HANGUP)

DEFAULT_UNAVAILABLE_MESSAGE = (
    "All representatives are currently unavailable. "
    "Please leave a message after the beep."
)

# TTS voice used for <Say> prompts
TTS_VOICE = os.getenv("TTS_VOICE", "Polly.Joanna-Neural")

# Exhaustion webhook (n8n, Zapier, etc). Leaving the URL empty disables notifications.
NOTIFY_WEBHOOK_URL = os.getenv("NOTIFY_WEBHOOK_URL", "")
NOTIFY_WEBHOOK_SECRET = os.getenv("NOTIFY_WEBHOOK_SECRET", "")
NOTIFY_SECRET_HEADER = os.getenv("NOTIFY_SECRET_HEADER", "X-Webhook-Secret")

# Use basic logging here since logging_config may not be loaded yet
_config_logger = logging.getLogger("forwarder.config")


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name, "")
    try:
        value = int(raw)
    except ValueError:
        if raw:
            _config_logger.warning(f"{name}={raw!r} is not an integer, using {default}")
        return default
    if value <= 0:
        _config_logger.warning(f"{name}={value} must be positive, using {default}")
        return default
    return value


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name, "")
    try:
        value = float(raw)
    except ValueError:
        if raw:
            _config_logger.warning(f"{name}={raw!r} is not a number, using {default}")
        return default
    if value <= 0:
        _config_logger.warning(f"{name}={value} must be positive, using {default}")
        return default
    return value


DIAL_TIMEOUT = _int_env("DIAL_TIMEOUT", DEFAULT_DIAL_TIMEOUT)
VOICEMAIL_MAX_LENGTH = _int_env("VOICEMAIL_MAX_LENGTH", 60)
NOTIFY_TIMEOUT = _float_env("NOTIFY_TIMEOUT", 10.0)

FALLBACK_MODE = os.getenv("FALLBACK_MODE", FALLBACK_VOICEMAIL).strip().lower()
if FALLBACK_MODE not in FALLBACK_MODES:
    _config_logger.warning(f"Unknown FALLBACK_MODE '{FALLBACK_MODE}', using '{FALLBACK_VOICEMAIL}'")
    FALLBACK_MODE = FALLBACK_VOICEMAIL

UNAVAILABLE_MESSAGE = os.getenv("UNAVAILABLE_MESSAGE", DEFAULT_UNAVAILABLE_MESSAGE)


def read_phone_numbers(environ=None) -> Tuple[str, ...]:
    """
    Read the candidate list from the environment.

    PHONE_NUMBERS (comma separated) wins. Otherwise PHONE_NUMBER_1,
    PHONE_NUMBER_2, ... are read in order until the first gap.
    Blank entries are dropped; order is priority.
    """
    env = os.environ if environ is None else environ

    combined = env.get("PHONE_NUMBERS", "")
    if combined.strip():
        return tuple(n.strip() for n in combined.split(",") if n.strip())

    numbers = []
    index = 1
    while f"PHONE_NUMBER_{index}" in env:
        number = env[f"PHONE_NUMBER_{index}"].strip()
        if number:
            numbers.append(number)
        index += 1
    return tuple(numbers)


@dataclass(frozen=True)
class CascadeConfig:
    """Process-wide, read-only settings handed to the cascade controller."""

    numbers: Tuple[str, ...]
    timeout_seconds: int = DEFAULT_DIAL_TIMEOUT
    fallback_mode: str = FALLBACK_VOICEMAIL
    unavailable_message: str = DEFAULT_UNAVAILABLE_MESSAGE
    voicemail_max_length: int = 60
    voice: Optional[str] = None

    def __post_init__(self):
        if self.timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive")
        if self.fallback_mode not in FALLBACK_MODES:
            raise ValueError(f"fallback_mode must be one of {FALLBACK_MODES}")
        # Accept lists from callers but store an immutable tuple
        object.__setattr__(self, "numbers", tuple(self.numbers))

    @property
    def voicemail_enabled(self) -> bool:
        return self.fallback_mode == FALLBACK_VOICEMAIL


def load_cascade_config() -> CascadeConfig:
    """Build the cascade configuration from environment variables."""
    numbers = read_phone_numbers()
    if not numbers:
        _config_logger.warning(
            "No forwarding numbers configured (PHONE_NUMBERS / PHONE_NUMBER_1..n). "
            "Every call will go straight to the fallback."
        )
    return CascadeConfig(
        numbers=numbers,
        timeout_seconds=DIAL_TIMEOUT,
        fallback_mode=FALLBACK_MODE,
        unavailable_message=UNAVAILABLE_MESSAGE,
        voicemail_max_length=VOICEMAIL_MAX_LENGTH,
        voice=TTS_VOICE or None,
    )


if APP_BASE_URL == "http://localhost:8000":
    _config_logger.warning("APP_BASE_URL is not set. Using default http://localhost:8000. Set APP_BASE_URL for production or ngrok.")

if not NOTIFY_WEBHOOK_URL:
    _config_logger.info("NOTIFY_WEBHOOK_URL is not set. Exhaustion notifications are disabled.")


def get_base_url_from_request(request) -> str:
    """
    Derive the public base URL from the incoming request's Host header.
    Twilio calls us through ngrok or a reverse proxy, so the URL it used
    is the one callbacks must point back to.

    Falls back to APP_BASE_URL if Host header is missing.
    """
    host = request.headers.get("host", "")
    forwarded_proto = request.headers.get("x-forwarded-proto", "")

    if host:
        # ngrok and most reverse proxies set x-forwarded-proto
        scheme = forwarded_proto if forwarded_proto else "https"
        return f"{scheme}://{host}"

    return APP_BASE_URL
