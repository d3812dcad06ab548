"""
Capture Controller
==================

Grabs a single still from the live stream with an ffmpeg subprocess.

This controller:
    - Spawns ffmpeg against the stream URL and reads one JPEG from stdout
    - Scales the still to a fixed width
    - Enforces two nested timeouts (terminate, then hard kill)
    - Allows only one capture in flight at a time

Single-flight policy:
    A capacity-1 semaphore guards the subprocess. A caller that cannot
    acquire it immediately does NOT wait: it gets the most recent buffered
    frame back with status BUSY. That frame is stale by definition. Load
    is shed instead of queued so a slow stream never piles up callers.

Design Rules:
    - Never raises past capture(): every failure is a FAILED outcome
    - FAILED and BUSY outcomes carry the latest buffered frame (or None)
    - Returns within kill_timeout (plus process reaping) even if ffmpeg hangs
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional

from bridgewatch.capture.frame import Frame


logger = logging.getLogger(__name__)


class CaptureError(Exception):
    """Raised internally when a frame grab fails."""
    pass


class CaptureStatus(str, Enum):
    """Result kind of a capture attempt."""

    CAPTURED = "CAPTURED"
    BUSY = "BUSY"
    FAILED = "FAILED"


@dataclass(frozen=True, slots=True)
class CaptureOutcome:
    """
    Result of a capture attempt.

    Attributes:
        status: CAPTURED, BUSY or FAILED
        frame: New unclassified frame (CAPTURED) or the latest buffered
            frame as a fallback (BUSY / FAILED, may be None)
        error: Failure description (FAILED only)
    """

    status: CaptureStatus
    frame: Optional[Frame] = None
    error: Optional[str] = None

    @property
    def is_fresh(self) -> bool:
        """True only when a new frame was grabbed by this call."""
        return self.status is CaptureStatus.CAPTURED


class CaptureController:
    """
    Single-flight ffmpeg frame grabber.

    Attributes:
        stream_url: URL of the live stream
        capture_timeout: Seconds before ffmpeg is asked to terminate
        kill_timeout: Seconds before ffmpeg is killed outright

    Example:
        controller = CaptureController(
            stream_url="https://.../playlist.m3u8",
            fallback=store.read_latest,
        )
        outcome = await controller.capture()
        if outcome.is_fresh:
            classify(outcome.frame)
    """

    def __init__(
        self,
        stream_url: str,
        fallback: Callable[[], Optional[Frame]],
        ffmpeg_bin: str = "ffmpeg",
        scale_width: int = 800,
        jpeg_quality: int = 2,
        capture_timeout: float = 20.0,
        kill_timeout: float = 25.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """
        Initialize capture controller.

        Args:
            stream_url: Stream to grab from
            fallback: Returns the latest buffered frame (used on BUSY/FAILED)
            ffmpeg_bin: ffmpeg executable
            scale_width: Output width in pixels
            jpeg_quality: ffmpeg -q:v (1 = best, 31 = worst)
            capture_timeout: Inner timeout in seconds
            kill_timeout: Outer timeout in seconds, must exceed capture_timeout
            clock: Time source for frame timestamps
        """
        if kill_timeout <= capture_timeout:
            raise ValueError("kill_timeout must be greater than capture_timeout")

        self.stream_url = stream_url
        self.ffmpeg_bin = ffmpeg_bin
        self.scale_width = scale_width
        self.jpeg_quality = jpeg_quality
        self.capture_timeout = capture_timeout
        self.kill_timeout = kill_timeout

        self._fallback = fallback
        self._clock = clock
        self._guard = asyncio.Semaphore(1)

        # Metrics
        self._attempts: int = 0
        self._successes: int = 0
        self._failures: int = 0
        self._busy_rejections: int = 0
        self._timeouts: int = 0
        self._last_error: Optional[str] = None
        self._last_duration: Optional[float] = None

    @property
    def in_flight(self) -> bool:
        """Whether a capture is currently running."""
        return self._guard.locked()

    def build_command(self) -> List[str]:
        """Build the ffmpeg argument list for one still."""
        return [
            self.ffmpeg_bin,
            "-hide_banner",
            "-loglevel", "error",
            "-y",
            "-i", self.stream_url,
            "-frames:v", "1",
            "-q:v", str(self.jpeg_quality),
            "-vf", f"scale={self.scale_width}:-1",
            "-f", "image2pipe",
            "-vcodec", "mjpeg",
            "pipe:1",
        ]

    async def capture(self) -> CaptureOutcome:
        """
        Grab one still, or shed load if a grab is already running.

        Returns:
            CaptureOutcome; never raises
        """
        if self._guard.locked():
            self._busy_rejections += 1
            logger.info("Capture already in progress, returning cached frame")
            return CaptureOutcome(CaptureStatus.BUSY, frame=self._fallback())

        async with self._guard:
            self._attempts += 1
            started = time.monotonic()
            try:
                image = await self._grab()
            except CaptureError as e:
                self._failures += 1
                self._last_error = str(e)
                logger.error(f"Capture failed: {e}")
                return CaptureOutcome(
                    CaptureStatus.FAILED,
                    frame=self._fallback(),
                    error=str(e),
                )
            finally:
                self._last_duration = time.monotonic() - started

            self._successes += 1
            frame = Frame(image=image, timestamp=self._clock())
            logger.info(
                f"Frame captured: {frame.size} bytes in {self._last_duration:.1f}s"
            )
            return CaptureOutcome(CaptureStatus.CAPTURED, frame=frame)

    async def _grab(self) -> bytes:
        """Run ffmpeg once and return the JPEG it wrote to stdout."""
        cmd = self.build_command()
        logger.debug(f"Spawning: {' '.join(cmd)}")

        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise CaptureError(f"could not start {self.ffmpeg_bin}: {e}") from e

        try:
            stdout, stderr = await asyncio.wait_for(
                process.communicate(),
                timeout=self.capture_timeout,
            )
        except asyncio.TimeoutError:
            self._timeouts += 1
            await self._stop_process(process)
            raise CaptureError(f"ffmpeg timed out after {self.capture_timeout:.0f}s")
        except OSError as e:
            await self._stop_process(process)
            raise CaptureError(f"failed reading ffmpeg output: {e}") from e

        if process.returncode != 0:
            detail = (stderr or b"").decode("utf-8", errors="replace").strip()
            raise CaptureError(
                f"ffmpeg exited with code {process.returncode}: {detail[-300:]}"
            )
        if not stdout:
            raise CaptureError("ffmpeg produced no output")

        return stdout

    async def _stop_process(self, process) -> None:
        """Terminate ffmpeg, escalating to SIGKILL at the outer timeout."""
        if process.returncode is not None:
            return

        grace = self.kill_timeout - self.capture_timeout
        try:
            process.terminate()
        except ProcessLookupError:
            return

        try:
            await asyncio.wait_for(process.wait(), timeout=grace)
        except asyncio.TimeoutError:
            logger.error("ffmpeg ignored SIGTERM, killing")
            try:
                process.kill()
            except ProcessLookupError:
                return
            await process.wait()

    def get_metrics(self) -> dict:
        """Get controller metrics for observability."""
        return {
            "in_flight": self.in_flight,
            "attempts": self._attempts,
            "successes": self._successes,
            "failures": self._failures,
            "busy_rejections": self._busy_rejections,
            "timeouts": self._timeouts,
            "last_error": self._last_error,
            "last_duration_seconds": self._last_duration,
        }
