"""
On-demand transcode streaming.

A TranscodeSession owns one ffmpeg process for one request. The encoded
output is relayed chunk by chunk as ffmpeg writes it to stdout; nothing is
buffered to disk. Whatever ends the session (normal EOF, a failing sink,
a cancellation event, task cancellation, or the consumer closing the
output iterator) the process is terminated and reaped before the outcome
is reported.
"""

import asyncio
import logging
import os
import re
import signal
import subprocess
import sys
from collections import deque
from typing import Any, AsyncIterator, Awaitable, Callable, Deque, Dict, List, Optional

from ..config import TranscodingConfig
from .cache import ProbeCache
from .classifier import CompatibilityClassifier
from .commands import CommandBuilder
from .constants import SIGINT_GRACE, SIGTERM_GRACE
from .error_classifier import ErrorClassifier, get_error_classifier
from .errors import EngineError, EngineTerminated, ProbeError
from .models import (
    AudioTranscode, SessionState, StreamOptions, TranscodeOutcome, VideoTranscode
)

logger = logging.getLogger(__name__)

OutputSink = Callable[[bytes], Awaitable[None]]
CompletionCallback = Callable[[bool, Optional[int], str], None]

STDERR_READ_SIZE = 4096
_LINE_BREAK = re.compile(rb"[\r\n]")


class TranscodeSession:
    """One ffmpeg process streaming one source file."""

    def __init__(
        self,
        source: str,
        output_format: str,
        chunk_size: int = 65536,
        terminated_exit_codes: Optional[List[int]] = None,
        tail_lines: int = 100,
        error_classifier: Optional[ErrorClassifier] = None,
        cancel_event: Optional[asyncio.Event] = None,
        on_complete: Optional[CompletionCallback] = None
    ):
        self.source = source
        self.output_format = output_format
        self.encoding_args: List[str] = []
        self.command: List[str] = []
        self.chunk_size = chunk_size
        self.terminated_exit_codes = set(terminated_exit_codes or [255])
        self.error_classifier = error_classifier or get_error_classifier()
        self.cancel_event = cancel_event or asyncio.Event()
        self.on_complete = on_complete

        self.state = SessionState.IDLE
        self.process: Optional[asyncio.subprocess.Process] = None
        self.outcome: Optional[TranscodeOutcome] = None
        self.bytes_sent = 0
        self._stderr_tail: Deque[str] = deque(maxlen=tail_lines)
        self._terminated = False

    def prepare(self, encoding_args: List[str], command: List[str]) -> None:
        self.encoding_args = encoding_args
        self.command = command

    def cancel(self) -> None:
        """Ask the running session to stop; the engine is terminated, not abandoned."""
        self.cancel_event.set()

    async def iter_output(self) -> AsyncIterator[bytes]:
        """
        Run ffmpeg and yield its output as it is produced.

        Closing this iterator early counts as the consumer disconnecting.
        The outcome is available on `self.outcome` once iteration ends.
        """
        if self.state not in (SessionState.IDLE, SessionState.CLASSIFYING):
            raise RuntimeError(f"Session already {self.state.value}")
        if not self.command:
            raise RuntimeError("Session has no command; call prepare() first")

        try:
            process = await self._spawn()
        except EngineError as e:
            logger.error(f"[Stream] {e}")
            self._finish(None, failure=str(e))
            return

        self.process = process
        self.state = SessionState.RUNNING
        logger.info(f"[Stream] Started ffmpeg (pid {process.pid}) for {self.source}")

        stderr_task = asyncio.create_task(self._read_stderr(process))
        cancel_task = asyncio.create_task(self._watch_cancel(process))
        reached_eof = False

        try:
            while True:
                chunk = await process.stdout.read(self.chunk_size)
                if not chunk:
                    reached_eof = True
                    break
                self.bytes_sent += len(chunk)
                yield chunk
        finally:
            if not reached_eof:
                # Consumer went away or we were cancelled mid-stream
                self._terminated = True
                await self._graceful_terminate(process)

            try:
                await asyncio.wait_for(process.wait(), timeout=SIGINT_GRACE)
            except asyncio.TimeoutError:
                logger.error("[Stream] ffmpeg did not exit after output ended, terminating")
                self._terminated = True
                await self._graceful_terminate(process)

            cancel_task.cancel()
            await asyncio.gather(stderr_task, cancel_task, return_exceptions=True)
            self._finish(process.returncode)

    async def _spawn(self) -> asyncio.subprocess.Process:
        kwargs: Dict[str, Any] = {
            "stdin": asyncio.subprocess.DEVNULL,
            "stdout": asyncio.subprocess.PIPE,
            "stderr": asyncio.subprocess.PIPE,
        }
        if sys.platform == "win32":
            kwargs["creationflags"] = subprocess.CREATE_NEW_PROCESS_GROUP

        logger.debug(f"[Stream] Running: {' '.join(self.command)}")
        try:
            return await asyncio.create_subprocess_exec(*self.command, **kwargs)
        except OSError as e:
            raise EngineError(f"Failed to start ffmpeg: {e}") from e

    def _append_stderr(self, line: bytes) -> None:
        if line.strip():
            self._stderr_tail.append(line.decode("utf-8", errors="ignore") + "\n")

    async def _read_stderr(self, process: asyncio.subprocess.Process) -> None:
        """
        Drain stderr until EOF, keeping the last lines.

        ffmpeg ends progress updates with a bare carriage return, so lines are
        split on both CR and LF rather than read with readline().
        """
        pending = b""
        while True:
            data = await process.stderr.read(STDERR_READ_SIZE)
            if not data:
                break
            pending += data
            *lines, pending = _LINE_BREAK.split(pending)
            for line in lines:
                self._append_stderr(line)
            if len(pending) > STDERR_READ_SIZE * 16:
                self._append_stderr(pending)
                pending = b""
        self._append_stderr(pending)

    async def _watch_cancel(self, process: asyncio.subprocess.Process) -> None:
        await self.cancel_event.wait()
        if process.returncode is None:
            logger.info("[Stream] Cancellation requested, terminating ffmpeg")
            self._terminated = True
            await self._graceful_terminate(process)

    async def _graceful_terminate(self, process: asyncio.subprocess.Process) -> None:
        """
        Stop ffmpeg, escalating SIGINT (CTRL_BREAK on Windows) to SIGTERM to SIGKILL.
        """
        if process.returncode is not None:
            return

        try:
            if sys.platform == "win32":
                process.send_signal(signal.CTRL_BREAK_EVENT)
            else:
                process.send_signal(signal.SIGINT)
        except (ProcessLookupError, OSError):
            pass

        try:
            await asyncio.wait_for(process.wait(), timeout=SIGINT_GRACE)
            return
        except asyncio.TimeoutError:
            pass

        try:
            process.terminate()
            await asyncio.wait_for(process.wait(), timeout=SIGTERM_GRACE)
            return
        except (asyncio.TimeoutError, ProcessLookupError, OSError):
            pass

        try:
            process.kill()
            await process.wait()
            logger.warning("[Stream] ffmpeg killed forcefully")
        except (ProcessLookupError, OSError):
            pass

    def _finish(self, returncode: Optional[int], failure: Optional[str] = None) -> None:
        diagnostic = failure or "".join(self._stderr_tail)

        if failure is None and (
            self._terminated
            or returncode in self.terminated_exit_codes
            or (returncode is not None and returncode < 0)
        ):
            outcome = TranscodeOutcome(
                state=SessionState.COMPLETED,
                exit_code=returncode,
                diagnostic=diagnostic,
                description="Transcoding terminated early",
                terminated_early=True,
                bytes_sent=self.bytes_sent,
            )
        elif failure is None and returncode == 0:
            outcome = TranscodeOutcome(
                state=SessionState.COMPLETED,
                exit_code=0,
                diagnostic=diagnostic,
                bytes_sent=self.bytes_sent,
            )
        else:
            outcome = TranscodeOutcome(
                state=SessionState.FAILED,
                exit_code=returncode,
                diagnostic=diagnostic,
                description=self.error_classifier.get_error_description(diagnostic),
                bytes_sent=self.bytes_sent,
            )

        self.outcome = outcome
        self.state = outcome.state
        self.process = None

        if outcome.error:
            logger.warning(
                f"[Stream] ffmpeg failed (code {returncode}) for {self.source}: {outcome.description}"
            )
        else:
            logger.info(
                f"[Stream] Finished {self.source}: code={returncode} "
                f"early={outcome.terminated_early} bytes={self.bytes_sent}"
            )

        if self.on_complete:
            try:
                self.on_complete(outcome.error, outcome.exit_code, outcome.diagnostic)
            except Exception as e:
                logger.warning(f"[Stream] Completion callback error: {e}")


class TranscodeStreamer:
    """Creates transcode sessions from classification results."""

    def __init__(
        self,
        cache: ProbeCache,
        classifier: CompatibilityClassifier,
        command_builder: CommandBuilder,
        config: Optional[TranscodingConfig] = None,
        error_classifier: Optional[ErrorClassifier] = None
    ):
        self.cache = cache
        self.classifier = classifier
        self.command_builder = command_builder
        self.config = config or TranscodingConfig()
        self.error_classifier = error_classifier or get_error_classifier()
        self._subtitles_supported: Optional[bool] = None

    async def subtitles_supported(self) -> bool:
        """Whether the installed ffmpeg has the `subtitles` filter (checked once)."""
        setting = self.config.subtitles_supported.lower()
        if setting in ("true", "false"):
            return setting == "true"

        if self._subtitles_supported is None:
            self._subtitles_supported = await self._detect_subtitle_filter()
        return self._subtitles_supported

    async def _detect_subtitle_filter(self) -> bool:
        try:
            process = await asyncio.create_subprocess_exec(
                self.command_builder.ffmpeg_path, "-hide_banner", "-filters",
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.DEVNULL,
            )
            stdout, _ = await asyncio.wait_for(process.communicate(), timeout=10.0)
        except (OSError, asyncio.TimeoutError) as e:
            logger.warning(f"[Stream] Could not list ffmpeg filters: {e}")
            return False

        supported = re.search(r"^\s*\S*\s+subtitles\s", stdout.decode("utf-8", errors="ignore"), re.M) is not None
        logger.info(f"[Stream] ffmpeg subtitles filter available: {supported}")
        return supported

    async def open_session(
        self,
        path: str,
        options: Optional[StreamOptions] = None,
        cancel_event: Optional[asyncio.Event] = None,
        on_complete: Optional[CompletionCallback] = None
    ) -> TranscodeSession:
        """
        Classify path and build a ready-to-run session.

        Raises:
            FilesystemError: the source file cannot be stat-ed.
        """
        options = options or StreamOptions()
        session = TranscodeSession(
            source=path,
            output_format=self.command_builder.output_format,
            chunk_size=self.config.chunk_size,
            terminated_exit_codes=self.config.terminated_exit_codes,
            tail_lines=self.config.diagnostic_tail_lines,
            error_classifier=self.error_classifier,
            cancel_event=cancel_event,
            on_complete=on_complete,
        )
        session.state = SessionState.CLASSIFYING

        try:
            metadata = await self.cache.get_metadata(path)
        except ProbeError as e:
            logger.warning(f"[Stream] Probe failed for {path}, re-encoding everything: {e}")
            metadata = None

        result = self.classifier.classify(path, metadata)
        video = result.video_transcode
        audio = result.audio_transcode
        if metadata is None:
            video, audio = VideoTranscode.REENCODE, AudioTranscode.REENCODE

        subtitle_file = None
        if options.use_subtitles:
            subtitle_file = options.subtitle_path or result.subtitle_file
            if subtitle_file and not os.path.isfile(subtitle_file):
                logger.warning(f"[Stream] Subtitle file not found, ignoring: {subtitle_file}")
                subtitle_file = None
            if subtitle_file and not await self.subtitles_supported():
                logger.warning("[Stream] ffmpeg lacks subtitle support, streaming without subtitles")
                subtitle_file = None

        encoding_args = self.command_builder.build_stream_args(
            video, audio, subtitle_file=subtitle_file, audio_track=options.audio_track
        )
        session.prepare(encoding_args, self.command_builder.build_stream_command(path, encoding_args))
        logger.info(f"[Stream] Transcode options for {os.path.basename(path)}: {' '.join(encoding_args)}")
        return session

    async def stream_transcode(
        self,
        path: str,
        sink: OutputSink,
        options: Optional[StreamOptions] = None,
        cancel_event: Optional[asyncio.Event] = None,
        on_complete: Optional[CompletionCallback] = None
    ) -> TranscodeOutcome:
        """
        Transcode path into sink until ffmpeg finishes or the consumer leaves.

        A sink signals that its consumer disconnected by raising
        ConnectionError or EngineTerminated; the session then ends as
        completed-early rather than failed.
        """
        session = await self.open_session(path, options, cancel_event, on_complete)
        output = session.iter_output()
        try:
            async for chunk in output:
                try:
                    await sink(chunk)
                except (ConnectionError, EngineTerminated) as e:
                    logger.info(f"[Stream] Consumer disconnected: {e!r}")
                    break
        finally:
            await output.aclose()

        return session.outcome
