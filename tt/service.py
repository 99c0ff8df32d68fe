"""Host-facing turn timer service: Qt slots for host events, the live tick, and display queries."""

from PySide6.QtCore import QObject, QTimer, Signal, Slot
from tt.common.logger import get_logger, log
from tt.core import config
from tt.core.clock import TurnClock
from tt.core.display import TimerDisplay, ZERO_TIME, format_time
from tt.core.events import EncounterEnded, PauseToggled, Tick, TurnChanged
from tt.core.store import JsonLedgerStore


# Construct one of these at startup and hand it to whatever needs to query times. Host events come in through the
# on_* slots, `refreshed` goes out whenever displayed values may have changed.
class TurnTimerService(QObject):

    refreshed = Signal()

    def __init__(self, store=None, is_writer=None, settings=None, clock=None, parent=None):
        super().__init__(parent)

        # -- Settings --
        self.settings = settings if settings is not None else config.load_settings()
        get_logger(level=self.settings.get("log_level", "INFO"), debug_runs=self.settings.get("debug_log_runs", 5))

        # -- Clock --
        self._store = store if store is not None else JsonLedgerStore()
        self.turn_clock = TurnClock(
            self._store,
            is_writer=is_writer,
            is_enabled=self.is_enabled,
            clock=clock,
            checkpoint_ticks=self.settings.get("checkpoint_ticks", 1),
        )

        # -- Tick timer --
        self._timer = QTimer(self)
        self._timer.setInterval(int(self.settings.get("tick_interval_ms", 1000)))
        self._timer.timeout.connect(self._tick)

    # The feature toggle. Read before every tick and every display recompute.
    def is_enabled(self):
        return bool(self.settings.get("enabled", True))

    def set_enabled(self, enabled):
        self.settings["enabled"] = bool(enabled)
        log.info(f"Turn timer {'enabled' if enabled else 'disabled'}")
        self.refreshed.emit()

    # ------------------------------------------------------------------ #
    #  Lifecycle                                                           #
    # ------------------------------------------------------------------ #

    @property
    def running(self):
        return self._timer.isActive()

    def start(self):
        if not self._timer.isActive():
            self._timer.start()
            log.info(f"Turn timer service started, ticking every {self._timer.interval()}ms")

    # Cancels the tick and forgets live state. Time since the last flush is not saved.
    def stop(self):
        self._timer.stop()
        self.turn_clock.reset()
        log.info("Turn timer service stopped")

    # ------------------------------------------------------------------ #
    #  Host events                                                         #
    # ------------------------------------------------------------------ #

    @Slot(str, object)
    def on_turn_changed(self, encounter_id, participant_id=None):
        self.turn_clock.apply(TurnChanged(encounter_id, participant_id))
        self.refreshed.emit()

    @Slot(str)
    def on_encounter_ended(self, encounter_id):
        self.turn_clock.apply(EncounterEnded(encounter_id))
        self.refreshed.emit()

    @Slot(bool)
    def on_pause_toggled(self, paused, encounter_id=None):
        self.turn_clock.apply(PauseToggled(bool(paused), encounter_id))
        self.refreshed.emit()

    # Render requests only ask for a recompute, they never touch the ledger.
    @Slot()
    def on_render_requested(self):
        if self.is_enabled():
            self.refreshed.emit()

    def _tick(self):
        if not self.is_enabled():
            return
        self.turn_clock.apply(Tick())
        self.refreshed.emit()

    # ------------------------------------------------------------------ #
    #  Queries                                                             #
    # ------------------------------------------------------------------ #

    def total_elapsed(self, encounter_id):
        return self.turn_clock.total_elapsed(encounter_id)

    def participant_elapsed(self, encounter_id, participant_id):
        return self.turn_clock.participant_elapsed(encounter_id, participant_id)

    def wall_elapsed(self, encounter_id):
        return self.turn_clock.wall_elapsed(encounter_id)

    @staticmethod
    def format_time(seconds):
        return format_time(seconds)

    # Builds one render's worth of values. None when the feature is off, all zeros with no active encounter.
    def display(self, encounter_id, participant_ids=()):
        if not self.is_enabled():
            return None
        if encounter_id is None:
            return TimerDisplay(participants={pid: ZERO_TIME for pid in participant_ids})

        turn_clock = self.turn_clock
        active = None
        if turn_clock.encounter_id == encounter_id and turn_clock.tracking and not turn_clock.paused:
            active = turn_clock.active_participant_id
        return TimerDisplay(
            total=format_time(self.total_elapsed(encounter_id)),
            participants={pid: format_time(self.participant_elapsed(encounter_id, pid)) for pid in participant_ids},
            active_participant_id=active,
        )
