"""Fixed-duration countdown driven by elapsed simulation time."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class Timer:
    """Countdown used by node state machines and the AI cadence."""

    duration_ms: float
    elapsed_ms: float = 0.0
    active: bool = False

    def start(self) -> None:
        self.active = True
        self.elapsed_ms = 0.0

    def rearm(self) -> None:
        """Start again, keeping any time that ran past the previous deadline."""

        overshoot = max(0.0, self.elapsed_ms - self.duration_ms)
        self.start()
        self.elapsed_ms = overshoot

    def stop(self) -> None:
        self.active = False

    def update(self, delta_ms: float) -> bool:
        """Advance the timer; return ``True`` on the tick it elapses."""

        if not self.active:
            return False
        self.elapsed_ms += delta_ms
        if self.elapsed_ms >= self.duration_ms:
            self.active = False
            return True
        return False

    @property
    def progress(self) -> float:
        if not self.active:
            return 0.0
        return min(1.0, self.elapsed_ms / self.duration_ms)

    @property
    def remaining_ms(self) -> float:
        if not self.active:
            return 0.0
        return max(0.0, self.duration_ms - self.elapsed_ms)
