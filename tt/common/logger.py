import logging
from pathlib import Path
from logging.handlers import RotatingFileHandler
from tt.common.setup import PATHS
from datetime import datetime

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s:%(filename)s:%(lineno)d] %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

LOGGER_NAME = "turntimer"
DEFAULT_DEBUG_RUNS = 5


# Turns a settings value ("INFO", "debug", 20) into a logging level, or None if it isn't one.
def parse_level(level):
    if isinstance(level, int) and not isinstance(level, bool):
        return level
    resolved = logging.getLevelName(str(level).upper())
    return resolved if isinstance(resolved, int) else None

# Only handlers this module created carry a name, so anything the host attaches is left alone.
def _own_handler(logger, handler_name):
    for handler in logger.handlers:
        if handler.get_name() == handler_name:
            return handler
    return None

# Builds the turntimer logger, or reconfigures it when called again with the levels from settings.json.
#   level:        level for turntimer.log and latest.log
#   debug_runs:   how many per-run debug logs (always at DEBUG, since ticks only log at debug) to keep around
def get_logger(level="INFO", debug_runs: int = DEFAULT_DEBUG_RUNS, log_dir: Path | None = None) -> logging.Logger:
    logger = logging.getLogger(LOGGER_NAME)
    logger.propagate = False
    # The logger itself passes everything, the handlers do the filtering
    logger.setLevel(logging.DEBUG)

    resolved = parse_level(level)
    if resolved is None:
        resolved = logging.INFO
        logger.warning(f"Unknown log level '{level}', falling back to INFO")

    log_dir = log_dir or PATHS.logs
    log_dir.mkdir(parents=True,exist_ok=True)
    fmt = logging.Formatter(LOG_FORMAT,LOG_DATE_FORMAT)

    # Rotating log across runs
    persistent = _own_handler(logger, f"{LOGGER_NAME}:persistent")
    if persistent is None:
        persistent = RotatingFileHandler(
            filename=log_dir / f"{LOGGER_NAME}.log",
            maxBytes=5 * 1024 * 1024,
            backupCount=5,
            encoding="utf-8",
        )
        persistent.setFormatter(fmt)
        persistent.set_name(f"{LOGGER_NAME}:persistent")
        logger.addHandler(persistent)
    persistent.setLevel(resolved)

    # Latest run only, overwritten each start
    latest = _own_handler(logger, f"{LOGGER_NAME}:latest")
    if latest is None:
        latest = logging.FileHandler(filename=log_dir / "latest.log", mode="w", encoding="utf-8")
        latest.setFormatter(fmt)
        latest.set_name(f"{LOGGER_NAME}:latest")
        logger.addHandler(latest)
    latest.setLevel(resolved)

    # One full debug log per run, oldest pruned past debug_runs
    debug_path = log_dir / "debug"
    if debug_runs > 0 and _own_handler(logger, f"{LOGGER_NAME}:debug_run") is None:
        debug_path.mkdir(parents=True,exist_ok=True)
        debug_run = logging.FileHandler(
            filename=debug_path / f"{LOGGER_NAME}_{datetime.now():%Y-%m-%d_%H-%M-%S}.log",
            encoding="utf-8",
        )
        debug_run.setLevel(logging.DEBUG)
        debug_run.setFormatter(fmt)
        debug_run.set_name(f"{LOGGER_NAME}:debug_run")
        logger.addHandler(debug_run)
    if debug_path.exists():
        runs = sorted(debug_path.glob(f"{LOGGER_NAME}_*.log"),key=lambda p: p.stat().st_mtime,reverse=True)
        for run in runs[max(debug_runs, 1):]:
            try: run.unlink()
            except OSError: pass

    return logger

log = get_logger()
log.info("=== INITIALIZED NEW SESSION ===")
