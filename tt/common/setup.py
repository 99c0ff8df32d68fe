import os
from pathlib import Path
from dataclasses import dataclass

# Lil helper function to create missing directories and hand the path back.
def ensure_directory(path: Path):
    path.mkdir(parents=True,exist_ok=True)
    return path

# Picks the root data folder. TURNTIMER_HOME always wins, then APPDATA on windows, then a dotfolder in home.
def resolve_data_root():
    override = os.getenv("TURNTIMER_HOME")
    if override:
        return Path(override)
    appdata = os.getenv("APPDATA")
    if appdata:
        return Path(appdata) / "TurnTimer"
    return Path.home() / ".turntimer"

# Dataclass for accessing paths across program.
@dataclass(frozen=False)
class ProjectPaths:

    data: Path
    logs: Path
    encounters: Path

    @staticmethod
    def build():
        # Folder for all settings, logs and ledgers
        data = ensure_directory(resolve_data_root())

        # Folders within the data folder
        logs = ensure_directory(data / "logs")
        encounters = ensure_directory(data / "encounters")

        return ProjectPaths(
            data = data,
            logs = logs,
            encounters = encounters,
        )
PATHS = ProjectPaths.build()
