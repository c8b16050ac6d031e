"""Per-channel rate limiting for spoken announcements."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional

from aurora_engine.config import AnnouncementConfig
from aurora_engine.errors import ConfigError

logger = logging.getLogger("aurora_engine.announce")


class Channel(Enum):
    OBJECT = "object"
    NAVIGATION = "navigation"
    GESTURE = "gesture"


@dataclass(frozen=True)
class AnnouncementCooldown:
    last_emit: Mapping[Channel, float] = field(default_factory=lambda: MappingProxyType({}))


@dataclass(frozen=True)
class GateDecision:
    state: AnnouncementCooldown
    emitted: bool
    text: str


class AnnouncementGate:
    """Lets an utterance through only if its channel has been quiet long enough.

    Channels are independent: a navigation announcement never delays an
    object announcement. Rejected offers leave the state untouched.
    """

    def __init__(self, cooldowns_ms: Optional[Mapping[str, float]] = None):
        raw = dict(AnnouncementConfig().cooldowns_ms)
        raw.update(cooldowns_ms or {})
        try:
            self.cooldowns_ms = {Channel(name): float(ms) for name, ms in raw.items()}
        except ValueError as e:
            raise ConfigError(f"unknown announcement channel: {e}") from e

    @classmethod
    def from_config(cls, config: AnnouncementConfig) -> AnnouncementGate:
        return cls(config.cooldowns_ms)

    def ready(self, state: AnnouncementCooldown, channel: Channel, now: float) -> bool:
        last = state.last_emit.get(channel)
        return last is None or now - last >= self.cooldowns_ms[channel]

    def offer(
        self,
        state: AnnouncementCooldown,
        channel: Channel,
        text: str,
        now: float,
    ) -> GateDecision:
        if not self.ready(state, channel, now):
            logger.debug("Suppressed %s announcement: %r", channel.value, text)
            return GateDecision(state=state, emitted=False, text=text)

        last_emit = dict(state.last_emit)
        last_emit[channel] = now
        return GateDecision(
            state=AnnouncementCooldown(MappingProxyType(last_emit)),
            emitted=True,
            text=text,
        )
