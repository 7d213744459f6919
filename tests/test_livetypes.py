"""Tests for livetypes module."""

import pytest
from pydantic import ValidationError

from voice_dictation.livetypes import (
    AbnormalRecorderExit,
    CancelResponse,
    DictationError,
    Document,
    DocumentUpdateRequest,
    HealthResponse,
    MessageLevel,
    MissingCredential,
    MissingDependency,
    MissingTranscriptionField,
    SessionState,
    StatusMessage,
    StatusResponse,
    ToggleRequest,
    ToggleResponse,
    TranscriptionParseError,
    UserCancelled,
)


class TestDocument:
    """Tests for Document model."""

    def test_insert_into_empty(self):
        """Inserting into an empty document should append."""
        doc = Document(id="notes")
        doc.insert("hello")

        assert doc.content == "hello"
        assert doc.cursor == 5

    def test_insert_at_cursor(self):
        """Text should go at the cursor, not the end."""
        doc = Document(id="notes", content="Dear , thanks", cursor=5)
        doc.insert("Sam")

        assert doc.content == "Dear Sam, thanks"
        assert doc.cursor == 8

    def test_cursor_past_end_is_clamped(self):
        """A stale cursor should insert at the end."""
        doc = Document(id="notes", content="abc", cursor=99)
        doc.insert("d")

        assert doc.content == "abcd"
        assert doc.cursor == 4

    def test_negative_cursor_rejected(self):
        """Cursor must not be negative."""
        with pytest.raises(ValidationError):
            Document(id="notes", cursor=-1)

    def test_id_required(self):
        """Documents need an id."""
        with pytest.raises(ValidationError):
            Document()


class TestRequests:
    """Tests for request models."""

    def test_toggle_default_document(self):
        """Toggle should default to the scratch document."""
        assert ToggleRequest().documentId == "scratch"

    def test_toggle_document(self):
        """Toggle should accept a document id."""
        assert ToggleRequest(documentId="mail").documentId == "mail"

    def test_document_update_defaults(self):
        """An update without cursor leaves it unset."""
        req = DocumentUpdateRequest(content="hi")

        assert req.content == "hi"
        assert req.cursor is None

    def test_document_update_negative_cursor(self):
        """Cursor must not be negative."""
        with pytest.raises(ValidationError):
            DocumentUpdateRequest(content="hi", cursor=-2)


class TestResponses:
    """Tests for response models."""

    def test_toggle_response(self):
        """State should serialise as its value."""
        resp = ToggleResponse(state=SessionState.RECORDING)

        assert resp.model_dump(mode="json") == {"status": "ok", "state": "recording"}

    def test_cancel_response(self):
        """Cancel response should carry the flag."""
        assert CancelResponse(cancelled=False).cancelled is False

    def test_status_response_defaults(self):
        """Status should default to no session."""
        resp = StatusResponse(state=SessionState.IDLE)

        assert resp.sessionId is None
        assert resp.livePids == []
        assert resp.messages == []

    def test_status_message_defaults(self):
        """Messages default to info level with a timestamp."""
        msg = StatusMessage(message="Recording...")

        assert msg.level == MessageLevel.INFO
        assert msg.timestamp is not None

    def test_health_defaults(self):
        """Health defaults to nothing available."""
        health = HealthResponse()

        assert health.status == "ok"
        assert not health.recorder_available
        assert not health.credential_configured


class TestSessionState:
    """Tests for SessionState enum."""

    def test_values(self):
        """States should have stable string values."""
        assert [s.value for s in SessionState] == [
            "idle",
            "recording",
            "stop_requested",
            "uploading",
        ]

    def test_string_comparison(self):
        """States compare equal to their values."""
        assert SessionState.IDLE == "idle"


class TestExceptions:
    """Tests for exception types."""

    def test_base_retcode(self):
        """Default retcode should be 500, overridable."""
        assert DictationError("x").retcode == 500
        assert DictationError("x", retcode=418).retcode == 418

    def test_missing_dependency(self):
        """MissingDependency should name the executable."""
        exc = MissingDependency("rec")

        assert isinstance(exc, DictationError)
        assert exc.executable == "rec"
        assert exc.retcode == 503
        assert "rec" in str(exc)

    def test_missing_credential(self):
        """MissingCredential should map to 503."""
        assert MissingCredential("none").retcode == 503

    def test_abnormal_recorder_exit(self):
        """AbnormalRecorderExit should include code and stderr."""
        exc = AbnormalRecorderExit(1, "no device")

        assert exc.returncode == 1
        assert str(exc) == "Recorder exited abnormally with code 1: no device"

    def test_abnormal_recorder_exit_without_stderr(self):
        """Without stderr the message ends at the code."""
        assert str(AbnormalRecorderExit(3)) == "Recorder exited abnormally with code 3"

    def test_parse_errors(self):
        """Parse errors should keep the raw body."""
        exc = MissingTranscriptionField("no text", raw="{}")

        assert isinstance(exc, TranscriptionParseError)
        assert exc.raw == "{}"
        assert exc.retcode == 502

    def test_user_cancelled(self):
        """UserCancelled is a DictationError."""
        with pytest.raises(DictationError):
            raise UserCancelled("cancelled")
