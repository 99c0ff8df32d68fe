"""Turn clock: the live timing state and the transitions that feed the ledger.

Time spent paused is removed after the fact. The open turn segment keeps
running through a pause, and on unpause the segment is flushed and the pause
length is debited from whoever was active when the pause began. Ticks skip
flushing while paused, so the debit always lands on a timer that already
holds the paused interval.
"""

import time
from tt.common.logger import log
from tt.core.events import ClockEvent, EncounterEnded, PauseToggled, Tick, TurnChanged
from tt.core.ledger import Ledger
from tt.core.store import LedgerStore, LedgerStoreError
from tt.util.misc import clamp0


class TurnClock:

    def __init__(self, store: LedgerStore, is_writer=None, is_enabled=None, clock=None, checkpoint_ticks=1):
        self._store = store
        self._is_writer = is_writer or (lambda: True)
        self._is_enabled = is_enabled or (lambda: True)
        self._clock = clock or time.time
        self.checkpoint_ticks = max(1, int(checkpoint_ticks))

        self.encounter_id = None
        self.active_participant_id = None
        self.turn_segment_start = None
        self.pause_started_at = None
        self._tick_n = 0

    #region === State ===

    @property
    def paused(self):
        return self.pause_started_at is not None

    # True while a participant's turn segment is open. The segment stays open through a pause.
    @property
    def tracking(self):
        return self.active_participant_id is not None and self.turn_segment_start is not None

    # Drops all in-memory state without flushing anything to the ledger.
    def reset(self):
        self.encounter_id = None
        self.active_participant_id = None
        self.turn_segment_start = None
        self.pause_started_at = None
        self._tick_n = 0

    #endregion === State ===

    #region === Transitions ===

    # Single entry point for host events. Returns True when the ledger was modified.
    def apply(self, event: ClockEvent) -> bool:
        if isinstance(event, TurnChanged):
            return self._on_turn_changed(event)
        elif isinstance(event, EncounterEnded):
            return self._on_encounter_ended(event)
        elif isinstance(event, PauseToggled):
            if event.paused:
                return self._on_pause_started(event)
            return self._on_pause_ended(event)
        elif isinstance(event, Tick):
            return self._on_tick()
        raise TypeError(f"Unsupported clock event: {event!r}")

    def _on_turn_changed(self, event):
        now = self._clock()
        previous = self.encounter_id
        changed = False

        # Close out the previous segment, and the part of any running pause that belongs to it
        if previous is not None and (self.tracking or self.paused):
            with self._store.locked(previous):
                ledger = self._load(previous, now)
                if ledger is not None:
                    if self.tracking:
                        elapsed = self._flush_segment(ledger, now)
                        log.debug(f"Turn ended for '{self.active_participant_id}' in '{previous}', +{elapsed:.3f}s")
                    if self.paused:
                        self._settle_pause(ledger, now)
                    changed = self._save(previous, ledger)

        self.encounter_id = event.encounter_id
        self.active_participant_id = event.participant_id
        self.turn_segment_start = now if event.participant_id is not None else None
        self._tick_n = 0

        # Pause continues, now charged to the new participant
        if self.paused:
            self.pause_started_at = now
        if self.paused or event.participant_id is not None:
            with self._store.locked(event.encounter_id):
                changed = self._begin(event.encounter_id, now) or changed

        if event.participant_id is None:
            log.debug(f"No active participant in encounter '{event.encounter_id}', clock is idle")
        else:
            log.debug(f"Turn started for '{event.participant_id}' in encounter '{event.encounter_id}'")
        return changed

    def _on_encounter_ended(self, event):
        if self.encounter_id is None or self.encounter_id == event.encounter_id:
            self.reset()
        else:
            log.debug(f"Encounter '{event.encounter_id}' ended while tracking '{self.encounter_id}', live state kept")

        if not self._is_writer():
            log.debug(f"Not the privileged writer, leaving ledger for '{event.encounter_id}' in place")
            return False
        with self._store.locked(event.encounter_id):
            try:
                self._store.unset(event.encounter_id)
            except LedgerStoreError:
                log.warning(f"Failed to remove ledger for ended encounter '{event.encounter_id}'",exc_info=True)
                return False
        log.info(f"Encounter '{event.encounter_id}' ended, ledger cleared")
        return True

    def _on_pause_started(self, event):
        if self.paused:
            log.debug("Pause received while already paused, ignoring")
            return False
        now = self._clock()
        self.pause_started_at = now
        if self.encounter_id is None:
            self.encounter_id = event.encounter_id
        log.debug(f"Paused at {now:.3f} with '{self.active_participant_id}' active")

        if self.encounter_id is None:
            return False
        with self._store.locked(self.encounter_id):
            ledger = self._load(self.encounter_id, now)
            if ledger is None:
                return False
            ledger.last_paused_participant = self.active_participant_id
            return self._save(self.encounter_id, ledger)

    def _on_pause_ended(self, event):
        now = self._clock()
        encounter_id = self.encounter_id or event.encounter_id

        # Unpause without a pause: nothing was over-counted, just drop any stale marker
        if not self.paused:
            log.debug("Unpause received without a matching pause")
            if encounter_id is None:
                return False
            with self._store.locked(encounter_id):
                ledger = self._load(encounter_id, now)
                if ledger is None or ledger.last_paused_participant is None:
                    return False
                ledger.last_paused_participant = None
                return self._save(encounter_id, ledger)

        changed = False
        if encounter_id is not None:
            with self._store.locked(encounter_id):
                ledger = self._load(encounter_id, now)
                if ledger is not None:
                    if self.tracking:
                        self._flush_segment(ledger, now)
                    duration = self._settle_pause(ledger, now)
                    log.debug(f"Unpaused after {duration:.3f}s")
                    changed = self._save(encounter_id, ledger)

        self.pause_started_at = None
        if self.tracking:
            self.turn_segment_start = now
        return changed

    def _on_tick(self):
        if not self._is_enabled():
            return False
        if not self.tracking or self.paused:
            return False

        self._tick_n += 1
        if self._tick_n % self.checkpoint_ticks:
            return False

        now = self._clock()
        with self._store.locked(self.encounter_id):
            ledger = self._load(self.encounter_id, now)
            if ledger is None:
                return False
            self._flush_segment(ledger, now)
            return self._save(self.encounter_id, ledger)

    #endregion === Transitions ===

    #region === Ledger helpers ===

    # Moves the open segment's time into the ledger and starts a new segment at `now`.
    def _flush_segment(self, ledger, now):
        elapsed = clamp0(now - self.turn_segment_start)
        ledger.accrue(self.active_participant_id, elapsed)
        self.turn_segment_start = now
        return elapsed

    # Books the running pause into the ledger: debits the participant who was active when it began, and counts it
    # as paused time. The caller decides what happens to pause_started_at.
    def _settle_pause(self, ledger, now):
        duration = clamp0(now - self.pause_started_at)
        if ledger.last_paused_participant is not None:
            ledger.accrue(ledger.last_paused_participant, -duration)
        ledger.paused_seconds += duration
        ledger.last_paused_participant = None
        return duration

    # Creates the encounter's ledger when its first turn starts, so startTime marks the real start of tracking.
    # Also hands a running pause over to whoever is now active.
    def _begin(self, encounter_id, now):
        try:
            ledger = self._store.get(encounter_id)
        except LedgerStoreError:
            log.warning(f"Could not load ledger for encounter '{encounter_id}'",exc_info=True)
            return False
        dirty = False
        if ledger is None:
            ledger = Ledger.fresh(now)
            dirty = True
            log.info(f"Started ledger for encounter '{encounter_id}'")
        if self.paused:
            ledger.last_paused_participant = self.active_participant_id
            dirty = True
        return self._save(encounter_id, ledger) if dirty else False

    def _load(self, encounter_id, now):
        try:
            return self._store.load(encounter_id, now)
        except LedgerStoreError:
            log.warning(f"Could not load ledger for encounter '{encounter_id}', no time recorded for this interval",exc_info=True)
            return None

    # Only the privileged writer persists. Everybody else has already applied the change locally and drops it here.
    def _save(self, encounter_id, ledger):
        if not self._is_writer():
            log.debug(f"Not the privileged writer, discarding ledger update for '{encounter_id}'")
            return False
        try:
            self._store.set(encounter_id, ledger)
        except LedgerStoreError:
            log.warning(f"Failed to save ledger for encounter '{encounter_id}'",exc_info=True)
            return False
        return True

    #endregion === Ledger helpers ===

    #region === Queries ===

    # Time of the open segment not yet flushed to the ledger, if it belongs to this encounter (and participant).
    # While paused the segment is counted only up to the pause.
    def _live_segment(self, encounter_id, now, participant_id=None):
        if encounter_id != self.encounter_id or not self.tracking:
            return 0.0
        if participant_id is not None and participant_id != self.active_participant_id:
            return 0.0
        if self.paused:
            now = min(now, self.pause_started_at)
        return clamp0(now - self.turn_segment_start)

    def _peek(self, encounter_id, now):
        try:
            return self._store.load(encounter_id, now)
        except LedgerStoreError:
            log.warning(f"Could not read ledger for encounter '{encounter_id}'",exc_info=True)
            return None

    def participant_elapsed(self, encounter_id, participant_id):
        now = self._clock()
        ledger = self._peek(encounter_id, now)
        recorded = ledger.timer(participant_id) if ledger is not None else 0.0
        return clamp0(recorded + self._live_segment(encounter_id, now, participant_id))

    # Accrued active time: every recorded participant timer plus the open segment.
    def total_elapsed(self, encounter_id):
        now = self._clock()
        ledger = self._peek(encounter_id, now)
        recorded = ledger.recorded_total() if ledger is not None else 0.0
        return clamp0(recorded + self._live_segment(encounter_id, now))

    # Wall-clock time since the encounter started, minus every paused second including a pause still running.
    def wall_elapsed(self, encounter_id):
        now = self._clock()
        ledger = self._peek(encounter_id, now)
        if ledger is None:
            return 0.0
        paused = ledger.paused_seconds
        if self.paused and encounter_id == self.encounter_id:
            paused += clamp0(now - self.pause_started_at)
        return clamp0(now - ledger.start_time - paused)

    #endregion === Queries ===
