"""Hold-to-confirm debouncing for classified symbols.

A symbol is confirmed only after it has been classified continuously for the
hold duration. A sustained pose re-confirms once per hold period. Any change
of symbol, including losing the hand, restarts accumulation from zero.

State is an explicit immutable value passed in and returned:

    debouncer = HoldDebouncer(hold_duration_ms=1000)
    state = GestureHoldState()
    result = debouncer.update(state, "A", now_ms)
    state = result.state
    if result.confirmed:
        ...
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from aurora_engine.config import MAX_HOLD_DURATION_MS
from aurora_engine.errors import ConfigError

logger = logging.getLogger("aurora_engine.debounce")


@dataclass(frozen=True)
class GestureHoldState:
    last_symbol: Optional[str] = None
    hold_start: float = 0.0


@dataclass(frozen=True)
class HoldUpdate:
    state: GestureHoldState
    progress: float  # 0-100
    confirmed: Optional[str] = None


class HoldDebouncer:
    """Requires a symbol to persist for `hold_duration_ms` before confirming it."""

    def __init__(self, hold_duration_ms: float = 1000.0):
        if not 0 < hold_duration_ms <= MAX_HOLD_DURATION_MS:
            raise ConfigError(
                f"hold_duration_ms must be in (0, {MAX_HOLD_DURATION_MS:g}], got {hold_duration_ms}"
            )
        self.hold_duration_ms = float(hold_duration_ms)

    def update(
        self, state: GestureHoldState, symbol: Optional[str], now: float
    ) -> HoldUpdate:
        if symbol is None:
            return HoldUpdate(state=GestureHoldState(None, now), progress=0.0)

        if symbol != state.last_symbol:
            if state.last_symbol is not None:
                logger.debug("Hold restarted: %s -> %s", state.last_symbol, symbol)
            return HoldUpdate(state=GestureHoldState(symbol, now), progress=0.0)

        elapsed = now - state.hold_start
        progress = min(100.0, max(0.0, elapsed / self.hold_duration_ms * 100.0))

        if elapsed >= self.hold_duration_ms:
            logger.debug("Hold complete for %s after %.0fms", symbol, elapsed)
            return HoldUpdate(
                state=GestureHoldState(symbol, now),
                progress=progress,
                confirmed=symbol,
            )

        return HoldUpdate(state=state, progress=progress)
