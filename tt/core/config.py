import json
from tt.common.logger import log
from tt.common.setup import PATHS
from tt.util.misc import now_iso


#region === Helpers and Paths ===

SETTINGS_PATH = PATHS.data / "settings.json"

# Default values for every setting, also used to validate types on load.
_SETTINGS_DEFAULTS = {
    "enabled": True,
    "tick_interval_ms": 1000,
    "checkpoint_ticks": 1,
    "log_level": "INFO",
    "debug_log_runs": 5,
}
# Lower bounds for the integer settings. Anything below falls back to the default.
_INT_MINIMUMS = {
    "tick_interval_ms": 50,
    "checkpoint_ticks": 1,
    "debug_log_runs": 0,
}

# Helper to return truly fresh, default settings.
def build_default_settings():
    return dict(_SETTINGS_DEFAULTS)

#endregion === Helpers and Paths ===

#region === Saving and Loading Settings ===

# Loads settings from PATHS.data / settings.json, filling defaults for anything missing or invalid. A missing file
# is written out with the defaults so users have something to edit.
def load_settings():
    try:
        if not SETTINGS_PATH.exists():
            settings = build_default_settings()
            log.info(f"No existing settings.json found at '{SETTINGS_PATH}', loading default settings.")
            save_settings(settings)
            return settings

        with open(SETTINGS_PATH, "r", encoding="utf-8") as f:
            settings = json.load(f)
        if not isinstance(settings, dict):
            log.warning(f"settings.json at '{SETTINGS_PATH}' wasn't an object, falling back to default settings.")
            return build_default_settings()

        defaulted_values = set()
        for key, default in _SETTINGS_DEFAULTS.items():
            value = settings.get(key)
            # bool is an int subclass, so check it explicitly in both directions
            if isinstance(default, bool):
                valid = isinstance(value, bool)
            elif isinstance(default, int):
                valid = isinstance(value, int) and not isinstance(value, bool) and value >= _INT_MINIMUMS.get(key, 0)
            else:
                valid = isinstance(value, type(default))
            if not valid:
                defaulted_values.add(key)
                settings[key] = default

        # Log results
        if defaulted_values:
            log.warning(f"Successfully loaded settings from '{SETTINGS_PATH}', but with missing values that were defaulted: {', '.join(sorted(defaulted_values))}")
        else:
            log.info(f"Successfully loaded settings from '{SETTINGS_PATH}'.")
        return settings
    # Fall back to defaults in case of error, but warn in log
    except (json.JSONDecodeError, OSError):
        log.warning("Ran into an error while trying to load settings.json, falling back to default settings.",exc_info=True)
        return build_default_settings()
# Write the given settings to disk under PATHS.data / settings.json
def save_settings(settings):
    data = dict(settings)
    data["saved_at"] = now_iso()
    with open(SETTINGS_PATH, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)
    log.info(f"Successfully saved settings to '{SETTINGS_PATH}'")

#endregion === Saving and Loading Settings ===
