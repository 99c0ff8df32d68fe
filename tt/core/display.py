"""Display values for the host's combat tracker: formatted totals and per-participant times."""

from dataclasses import dataclass, field


def format_time(seconds):
    """Format elapsed seconds as HH:MM:SS. Negative values clamp to zero, hours never wrap."""
    seconds = max(0, int(seconds))
    h, rem = divmod(seconds, 3600)
    m, s = divmod(rem, 60)
    return f"{h:02d}:{m:02d}:{s:02d}"


ZERO_TIME = format_time(0)


@dataclass
class TimerDisplay:
    """Everything one tracker render needs."""
    total: str = ZERO_TIME
    participants: dict = field(default_factory=dict)   # participant id -> "HH:MM:SS"
    active_participant_id: str | None = None            # highlighted as running, None while paused or idle
