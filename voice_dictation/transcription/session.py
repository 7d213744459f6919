"""Dictation session coordinator.

This is the state machine that chains the two external processes:
- Recorder (transport.recorder) writes the audio artifact
- Uploader (transport.uploader) sends it for transcription
- Host events (SessionEvents) receive status and the final text

The coordinator never blocks. Each session runs one pipeline task that awaits
the recorder's exit, then the uploader's exit, checking the cancellation
flag between steps.
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Iterable, Optional, Protocol

from ..audio.artifact import create_artifact_path, delete_artifact, is_artifact_usable
from ..constants import RAW_LOG_LIMIT, REAP_TIMEOUT, RECORDER_SUCCESS_CODES, SHUTDOWN_TIMEOUT
from ..livetypes import AbnormalRecorderExit, DictationError, SessionState
from ..protocols.transcription import DictationConfig
from ..transport.process import ProcessHandle
from ..transport.recorder import RecorderLauncher
from ..transport.uploader import TransferLauncher

logger = logging.getLogger(__name__)

CredentialProvider = Callable[[], Optional[str]]


class SessionEvents(Protocol):
    """Callbacks the host receives from the coordinator."""

    def on_start(self) -> None:
        ...

    def on_stop_requested(self) -> None:
        ...

    def on_cancelled(self) -> None:
        ...

    def on_transcription(self, text: str, context: Any) -> None:
        ...

    def on_error(self, message: str) -> None:
        ...


class LoggingEvents:
    """SessionEvents that only log. Used when the host supplies none."""

    def on_start(self) -> None:
        logger.info("Recording...")

    def on_stop_requested(self) -> None:
        logger.info("Stopping recording")

    def on_cancelled(self) -> None:
        logger.info("Dictation cancelled")

    def on_transcription(self, text: str, context: Any) -> None:
        logger.info(f"Transcription received for {context!r}: {text}")

    def on_error(self, message: str) -> None:
        logger.error(message)


@dataclass
class Session:
    """One recording/transcription run."""

    context: Any = None
    session_id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])
    state: SessionState = SessionState.RECORDING
    artifact_path: Optional[Path] = None
    cancelled: bool = False
    stop_requested: bool = False
    recorder: Optional[ProcessHandle] = None
    uploader: Optional[ProcessHandle] = None

    @property
    def live_handles(self) -> list[ProcessHandle]:
        return [h for h in (self.recorder, self.uploader) if h is not None and h.is_running]

    @property
    def live_pids(self) -> list[int]:
        return [h.pid for h in self.live_handles]


class SessionCoordinator:
    """Owns the single active dictation session.

    Usage:
        coordinator = SessionCoordinator(recorder, transfer, config, events)

        await coordinator.toggle(context="notes")   # idle -> recording
        await coordinator.toggle()                  # recording -> stop requested
        coordinator.cancel()                        # any active state -> idle
    """

    def __init__(
        self,
        recorder: RecorderLauncher,
        transfer: TransferLauncher,
        config: DictationConfig,
        events: Optional[SessionEvents] = None,
        credential_provider: Optional[CredentialProvider] = None,
        success_codes: Iterable[int] = RECORDER_SUCCESS_CODES,
        reap_timeout: float = REAP_TIMEOUT,
        artifact_dir: Optional[Path | str] = None,
    ):
        self.recorder = recorder
        self.transfer = transfer
        self.config = config
        self.events: SessionEvents = events or LoggingEvents()
        self.credential_provider = credential_provider
        self.success_codes = frozenset(success_codes)
        self.reap_timeout = reap_timeout
        self.artifact_dir = artifact_dir

        self._session: Optional[Session] = None
        # Cancelled sessions whose pipeline has not finished yet
        self._retired: list[Session] = []
        self._tasks: set[asyncio.Task] = set()
        # Held from reaping until the recorder is spawned and watched
        self._start_lock = asyncio.Lock()

    @property
    def session(self) -> Optional[Session]:
        return self._session

    @property
    def state(self) -> SessionState:
        return self._session.state if self._session else SessionState.IDLE

    @property
    def live_handles(self) -> list[ProcessHandle]:
        handles = []
        for session in [*self._retired, self._session]:
            if session is not None:
                handles.extend(session.live_handles)
        return handles

    async def toggle(self, context: Any = None) -> SessionState:
        """Start a session when idle, otherwise request a graceful stop.

        Never starts a second session while one is active.

        Raises:
            MissingDependency: If the recorder is absent (session stays idle)
        """
        session = self._session
        if session is None:
            await self._start(context)
        elif session.state == SessionState.RECORDING:
            self.request_stop()
        else:
            logger.info(
                f"Toggle ignored while {session.state.value}",
                extra={"session_id": session.session_id},
            )
        return self.state

    async def _start(self, context: Any) -> None:
        self.recorder.check_available()

        session = Session(context=context)
        self._session = session
        async with self._start_lock:
            try:
                await self._reap_retired()
                if session.cancelled:
                    logger.info(
                        "Session cancelled before the recorder started",
                        extra={"session_id": session.session_id},
                    )
                    self._finish(session)
                    return
                session.artifact_path = create_artifact_path(self.artifact_dir)
                handle = await self.recorder.start(self.config.max_duration, session.artifact_path)
            except BaseException:
                delete_artifact(session.artifact_path)
                self._finish(session)
                raise

            session.recorder = handle
            self._watch(self._run_pipeline(session))
            logger.info(
                "Dictation session started",
                extra={"session_id": session.session_id, "pid": handle.pid},
            )

            # Toggle or cancel may have arrived while the recorder was spawning
            if session.cancelled:
                handle.kill()
                return
        self._emit("on_start")
        if session.stop_requested:
            handle.interrupt()

    def request_stop(self) -> bool:
        """Ask the recorder to stop cleanly so it can flush the artifact.

        Returns:
            True if a stop was requested
        """
        session = self._session
        if session is None or session.state != SessionState.RECORDING:
            return False

        session.state = SessionState.STOP_REQUESTED
        session.stop_requested = True
        if session.recorder is not None:
            session.recorder.interrupt()
        logger.info("Stop requested", extra={"session_id": session.session_id})
        self._emit("on_stop_requested")
        return True

    def cancel(self) -> bool:
        """Abandon the active session.

        Kills whichever process is live; the upload is skipped and any
        uploader output is discarded. A no-op when idle.

        Returns:
            True if a session was cancelled
        """
        session = self._session
        if session is None:
            return False

        session.cancelled = True
        session.stop_requested = False
        session.state = SessionState.IDLE
        for handle in session.live_handles:
            handle.kill()

        self._session = None
        self._retired.append(session)
        logger.info("Dictation cancelled", extra={"session_id": session.session_id})
        self._emit("on_cancelled")
        return True

    async def _reap_retired(self) -> None:
        """Kill and await processes left over from cancelled sessions."""
        stragglers = [s for s in self._retired if s.live_handles]
        if not stragglers:
            return

        for session in stragglers:
            for handle in session.live_handles:
                handle.kill()

        pending = [t for t in self._tasks if not t.done()]
        if not pending:
            return
        _, not_done = await asyncio.wait(pending, timeout=self.reap_timeout)
        if not_done:
            logger.warning(
                "Processes from a cancelled session did not exit in time",
                extra={"pending": len(not_done)},
            )

    def _watch(self, coro) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run_pipeline(self, session: Session) -> None:
        try:
            await self._pipeline(session)
        except Exception as e:
            logger.exception(
                "Dictation pipeline failed",
                extra={"session_id": session.session_id},
            )
            if not session.cancelled:
                self._emit("on_error", f"Dictation failed: {e}")
        finally:
            for handle in session.live_handles:
                handle.kill()
            session.recorder = None
            session.uploader = None
            delete_artifact(session.artifact_path)
            self._finish(session)

    async def _pipeline(self, session: Session) -> None:
        recorder_exit = await session.recorder.wait()
        returncode = recorder_exit.returncode
        logger.info(
            "Recorder exited",
            extra={"session_id": session.session_id, "returncode": returncode},
        )

        if returncode not in self.success_codes:
            if session.cancelled:
                return
            self._emit("on_error", str(AbnormalRecorderExit(returncode, recorder_exit.stderr_text)))
            return

        if session.cancelled:
            logger.info(
                "Session was cancelled, skipping upload",
                extra={"session_id": session.session_id},
            )
            return

        if not is_artifact_usable(session.artifact_path):
            self._emit("on_error", "Recording produced no audio")
            return

        session.state = SessionState.UPLOADING
        try:
            handle = await self.transfer.start(
                session.artifact_path,
                self.config.endpoint,
                self._resolve_credential(),
            )
        except DictationError as e:
            logger.warning(
                f"Upload not started: {e}",
                extra={"session_id": session.session_id},
            )
            if not session.cancelled:
                self._emit("on_error", str(e))
            return

        session.uploader = handle
        if session.cancelled:
            handle.kill()

        uploader_exit = await handle.wait()
        if session.cancelled:
            logger.info(
                "Session was cancelled, discarding upload output",
                extra={"session_id": session.session_id},
            )
            return

        response = self.transfer.parse_response(uploader_exit.stdout)
        if response.is_success:
            logger.info(
                "Transcription received",
                extra={"session_id": session.session_id, "chars": len(response.text)},
            )
            self._emit("on_transcription", response.text, session.context)
            return

        logger.warning(
            f"No transcription received: {response.error_message}",
            extra={
                "session_id": session.session_id,
                "returncode": uploader_exit.returncode,
                "raw": response.raw[:RAW_LOG_LIMIT],
                "stderr": uploader_exit.stderr_text,
            },
        )
        message = f"No transcription received: {response.error_message}"
        if uploader_exit.returncode != 0 and uploader_exit.stderr_text:
            message = f"{message} ({uploader_exit.stderr_text})"
        self._emit("on_error", message)

    def _resolve_credential(self) -> str:
        if self.credential_provider is not None:
            return self.credential_provider() or ""
        return self.config.credential

    def _finish(self, session: Session) -> None:
        session.state = SessionState.IDLE
        if self._session is session:
            self._session = None
        if session in self._retired:
            self._retired.remove(session)

    def _emit(self, event: str, *args: Any) -> None:
        try:
            getattr(self.events, event)(*args)
        except Exception:
            logger.exception("Error in session event handler", extra={"event": event})

    async def drain(self) -> None:
        """Wait until every session pipeline has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def shutdown(self, timeout: float = SHUTDOWN_TIMEOUT) -> None:
        """Cancel the active session and wait for its processes to go."""
        self.cancel()
        for session in list(self._retired):
            for handle in session.live_handles:
                handle.kill()
        try:
            await asyncio.wait_for(self.drain(), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning("Timeout waiting for dictation processes during shutdown")
            for task in list(self._tasks):
                task.cancel()

    def snapshot(self) -> dict[str, Any]:
        """Describe the current session for status reporting."""
        session = self._session
        return {
            "state": self.state,
            "session_id": session.session_id if session else None,
            "context": session.context if session else None,
            "live_pids": [h.pid for h in self.live_handles],
        }
