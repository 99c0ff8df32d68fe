"""Ledger persistence, keyed by encounter ID.

Stores only move ledgers in and out. Deciding who may write is the clock's job.
"""

import json
import threading
import weakref
from contextlib import contextmanager
from pathlib import Path
from urllib.parse import quote
from tt.common.logger import log
from tt.core.ledger import Ledger
from tt.util.misc import now_iso


class LedgerStoreError(Exception):
    """Raised when a ledger could not be read from or written to the backing store."""


# Base store. Subclasses implement get/set/unset; the per-encounter locks are shared logic.
class LedgerStore:

    def __init__(self):
        self._locks = weakref.WeakValueDictionary()
        self._locks_guard = threading.Lock()

    # Serializes read-modify-write cycles for a single encounter. A lock lives only while someone holds or waits on it.
    @contextmanager
    def locked(self, encounter_id):
        with self._locks_guard:
            lock = self._locks.get(encounter_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[encounter_id] = lock
        with lock:
            yield

    def get(self, encounter_id) -> Ledger | None:
        raise NotImplementedError

    def set(self, encounter_id, ledger: Ledger):
        raise NotImplementedError

    def unset(self, encounter_id):
        raise NotImplementedError

    # Returns the stored ledger, or a fresh unsaved one when nothing is recorded yet.
    def load(self, encounter_id, now=None) -> Ledger:
        ledger = self.get(encounter_id)
        if ledger is None:
            return Ledger.fresh(now)
        return ledger


# Keeps ledgers in a dict. Used by observers that never persist and in tests.
class MemoryLedgerStore(LedgerStore):

    def __init__(self):
        super().__init__()
        self._ledgers = {}

    def get(self, encounter_id):
        data = self._ledgers.get(encounter_id)
        return None if data is None else Ledger.from_dict(data)

    def set(self, encounter_id, ledger):
        self._ledgers[encounter_id] = ledger.to_dict()

    def unset(self, encounter_id):
        self._ledgers.pop(encounter_id, None)

    def __contains__(self, encounter_id):
        return encounter_id in self._ledgers


# One json file per encounter under the given directory (PATHS.encounters by default).
class JsonLedgerStore(LedgerStore):

    def __init__(self, directory: Path | None = None):
        super().__init__()
        if directory is None:
            from tt.common.setup import PATHS
            directory = PATHS.encounters
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)

    # Percent-encodes the id, so distinct ids always get distinct files and nothing escapes the directory.
    def path_for(self, encounter_id):
        safe = quote(str(encounter_id), safe="")
        if not safe:
            raise LedgerStoreError(f"Encounter id {encounter_id!r} can't be used as a ledger file name")
        return self.directory / f"encounter_{safe}.json"

    def get(self, encounter_id):
        path = self.path_for(encounter_id)
        if not path.exists():
            return None
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        # A corrupt ledger is treated as missing rather than stopping the tracker
        except json.JSONDecodeError:
            log.warning(f"Ledger file '{path}' is corrupt, treating encounter '{encounter_id}' as having no recorded time.",exc_info=True)
            return None
        except OSError as e:
            raise LedgerStoreError(f"Failed to read ledger '{path}'") from e
        return Ledger.from_dict(data)

    # Writes to a temp file first, then swaps it in so a crash mid-write never leaves half a ledger.
    def set(self, encounter_id, ledger):
        path = self.path_for(encounter_id)
        data = ledger.to_dict()
        data["savedAt"] = now_iso()
        tmp_path = path.with_suffix(".json.tmp")
        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
            tmp_path.replace(path)
        except OSError as e:
            raise LedgerStoreError(f"Failed to write ledger '{path}'") from e
        log.debug(f"Saved ledger for encounter '{encounter_id}' to '{path}'")

    def unset(self, encounter_id):
        path = self.path_for(encounter_id)
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            raise LedgerStoreError(f"Failed to remove ledger '{path}'") from e
        log.info(f"Removed ledger for encounter '{encounter_id}'")
