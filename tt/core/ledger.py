"""Per-encounter time-accounting record.

Serialized with camelCase keys (startTime, participantTimers, ...). Older
pausedTime / lastPausedCombatant keys are still read.
"""

import time
from dataclasses import dataclass, field
from tt.common.logger import log
from tt.util.misc import clamp0


SCHEMA_VERSION = 1


@dataclass
class Ledger:
    start_time: float
    participant_timers: dict = field(default_factory=dict)
    paused_seconds: float = 0.0
    last_paused_participant: str | None = None

    # Helper to return a truly fresh ledger, starting now.
    @classmethod
    def fresh(cls, now=None):
        return cls(start_time=time.time() if now is None else float(now))

    def timer(self, participant_id):
        return self.participant_timers.get(participant_id, 0.0)

    # Adds (or with a negative value, debits) seconds to a participant. The stored value never drops below zero.
    def accrue(self, participant_id, seconds):
        self.participant_timers[participant_id] = clamp0(self.timer(participant_id) + seconds)
        return self.participant_timers[participant_id]

    def recorded_total(self):
        return sum(self.participant_timers.values())

    def to_dict(self):
        return {
            "schemaVersion": SCHEMA_VERSION,
            "startTime": self.start_time,
            "participantTimers": dict(self.participant_timers),
            "pausedSeconds": self.paused_seconds,
            "lastPausedParticipant": self.last_paused_participant,
        }

    # Builds a ledger from its stored dict, defaulting anything missing or malformed. startTime falls back to `now`
    # only when the stored one is unusable.
    @classmethod
    def from_dict(cls, data, now=None):
        if not isinstance(data, dict):
            log.warning(f"Ledger data was a {type(data).__name__}, not a dict, starting a fresh ledger.")
            return cls.fresh(now)
        defaulted_values = set()

        start_time = data.get("startTime")
        if isinstance(start_time, bool) or not isinstance(start_time, (int, float)):
            defaulted_values.add("startTime")
            start_time = time.time() if now is None else now

        timers = {}
        raw_timers = data.get("participantTimers")
        if not isinstance(raw_timers, dict):
            defaulted_values.add("participantTimers")
        else:
            for participant_id, seconds in raw_timers.items():
                if isinstance(seconds, bool) or not isinstance(seconds, (int, float)):
                    defaulted_values.add(f"participantTimers.{participant_id}")
                    continue
                timers[str(participant_id)] = clamp0(float(seconds))

        paused_seconds = data.get("pausedSeconds", data.get("pausedTime"))
        if isinstance(paused_seconds, bool) or not isinstance(paused_seconds, (int, float)):
            defaulted_values.add("pausedSeconds")
            paused_seconds = 0.0

        last_paused = data.get("lastPausedParticipant", data.get("lastPausedCombatant"))
        if last_paused is not None and not isinstance(last_paused, str):
            defaulted_values.add("lastPausedParticipant")
            last_paused = None

        if defaulted_values:
            log.warning(f"Loaded ledger with missing values that were defaulted: {', '.join(sorted(defaulted_values))}")

        return cls(
            start_time=float(start_time),
            participant_timers=timers,
            paused_seconds=clamp0(float(paused_seconds)),
            last_paused_participant=last_paused,
        )
