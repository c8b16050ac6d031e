"""Single-tick-at-a-time frame loop.

The loop pulls one frame from its source, runs one session tick, and only
then asks for the next frame. Ticks never overlap, which is what lets the
sessions keep plain mutable state without locks.

    loop = FrameLoop(source, session)
    task = asyncio.create_task(loop.run())
    ...
    loop.stop()        # teardown: stop pulling, close the source
    await task

A frame that arrives after stop() is discarded unread. An
InputUnavailableError from the source is forwarded to the session's
input-unavailable listeners and re-raised; retrying is the caller's job.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Optional, Protocol, Union

from aurora_engine.errors import InputUnavailableError
from aurora_engine.hands import REFERENCE_HEIGHT, REFERENCE_WIDTH
from aurora_engine.pipeline import DetectionSession, DetectionTick, GestureSession, GestureTick

logger = logging.getLogger("aurora_engine.loop")


@dataclass
class HandInput:
    """Hand landmarks for one tick."""
    timestamp: float  # ms
    hands: list = field(default_factory=list)
    frame_size: tuple[int, int] = (REFERENCE_WIDTH, REFERENCE_HEIGHT)


@dataclass
class DetectionInput:
    """Detector output for one tick."""
    timestamp: float  # ms
    detections: list = field(default_factory=list)


Frame = Union[HandInput, DetectionInput]


class FrameSource(Protocol):
    async def next_frame(self) -> Optional[Frame]:
        """Next frame, or None when the stream has ended."""
        ...

    async def close(self) -> None:
        ...


def dispatch(
    session: GestureSession | DetectionSession, frame: Frame
) -> GestureTick | DetectionTick:
    """Run one tick of `session` on `frame`."""
    if isinstance(session, GestureSession):
        if not isinstance(frame, HandInput):
            raise TypeError(f"gesture session cannot process {type(frame).__name__}")
        return session.process(frame.hands, frame.timestamp, frame.frame_size)
    if not isinstance(frame, DetectionInput):
        raise TypeError(f"detection session cannot process {type(frame).__name__}")
    return session.process(frame.detections, frame.timestamp)


class FrameLoop:
    def __init__(self, source: FrameSource, session: GestureSession | DetectionSession):
        self.source = source
        self.session = session
        self._running = False
        self._ticks = 0

    @property
    def running(self) -> bool:
        return self._running

    @property
    def ticks(self) -> int:
        return self._ticks

    def stop(self):
        """Request teardown. The tick in flight (if any) is not processed."""
        if self._running:
            logger.info("Stopping frame loop after %d ticks", self._ticks)
        self._running = False

    async def run(self) -> int:
        """Process frames until the source ends or stop() is called.

        Returns the number of ticks processed.
        """
        self._running = True
        logger.info("Frame loop started (%s)", self.session.stream)
        try:
            while self._running:
                try:
                    frame = await self.source.next_frame()
                except InputUnavailableError as e:
                    self.session.report_unavailable(e.reason)
                    raise

                if not self._running:
                    # Torn down while waiting on the source
                    break
                if frame is None:
                    break

                dispatch(self.session, frame)
                self._ticks += 1
                # Yield so other tasks (and stop()) get a turn between ticks
                await asyncio.sleep(0)
        finally:
            self._running = False
            await self.source.close()
            logger.info("Frame loop ended (%s, %d ticks)", self.session.stream, self._ticks)
        return self._ticks
