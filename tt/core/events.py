"""Host events the turn clock reacts to."""

from dataclasses import dataclass


@dataclass(frozen=True)
class TurnChanged:
    """Round or turn index changed. ``participant_id`` is None when nobody resolves (empty encounter)."""
    encounter_id: str
    participant_id: str | None


@dataclass(frozen=True)
class EncounterEnded:
    encounter_id: str


@dataclass(frozen=True)
class PauseToggled:
    paused: bool
    encounter_id: str | None = None


@dataclass(frozen=True)
class Tick:
    pass


ClockEvent = TurnChanged | EncounterEnded | PauseToggled | Tick
