"""Tests for forwarder.voicemail — recording/transcription sink and SendGrid email."""
from unittest.mock import MagicMock, patch

from forwarder.voicemail import (
    build_voicemail_email,
    handle_recording,
    handle_transcription,
    send_voicemail_email,
)


def test_handle_recording_says_goodbye():
    xml = str(handle_recording("CA1", "https://api.twilio.com/rec/RE1", "8"))
    assert "Thank you for your message" in xml
    assert "<Hangup" in xml


def test_handle_transcription_strips_text():
    assert handle_transcription("CA1", "  hello there ") == "hello there"
    assert handle_transcription("CA1", None) == ""


def test_build_voicemail_email():
    subject, body = build_voicemail_email("CA1", "+15557654321", "call me", "https://rec")
    assert "+15557654321" in subject
    assert "call me" in body
    assert "https://rec" in body
    assert "CA1" in body


def test_build_voicemail_email_empty_transcription():
    _, body = build_voicemail_email("CA1", "", "", "")
    assert "no transcription available" in body


class TestSendVoicemailEmail:
    def test_dev_mode_without_key(self, monkeypatch):
        monkeypatch.delenv("SENDGRID_API_KEY", raising=False)
        monkeypatch.delenv("VOICEMAIL_EMAIL_TO", raising=False)
        assert send_voicemail_email("CA1", "+1", "hi") is True

    @patch("sendgrid.SendGridAPIClient")
    def test_sends_with_sendgrid(self, mock_client_cls, monkeypatch):
        monkeypatch.setenv("SENDGRID_API_KEY", "SG.test")
        monkeypatch.setenv("VOICEMAIL_EMAIL_TO", "team@example.com")
        mock_client = MagicMock()
        mock_client.send.return_value = MagicMock(status_code=202)
        mock_client_cls.return_value = mock_client

        assert send_voicemail_email("CA1", "+1", "hi", "https://rec") is True
        mock_client_cls.assert_called_once_with("SG.test")
        mock_client.send.assert_called_once()

    @patch("sendgrid.SendGridAPIClient")
    def test_sendgrid_error_is_reported(self, mock_client_cls, monkeypatch):
        monkeypatch.setenv("SENDGRID_API_KEY", "SG.test")
        monkeypatch.setenv("VOICEMAIL_EMAIL_TO", "team@example.com")
        mock_client_cls.return_value.send.side_effect = RuntimeError("403 Forbidden")

        assert send_voicemail_email("CA1", "+1", "hi") is False
