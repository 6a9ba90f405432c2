# secure_mail/storage/config_store.py
"""
Where the config file lives, and how it is read and (over)written.

Precedence: a file in the working directory wins outright; otherwise the
platform's global config directory is used. The two are never merged.

Saving targets each requested location independently. An existing file is
only replaced after `confirm(path)` says yes, and every write goes to a
temporary file in the same directory which is then renamed over the target.
"""

from __future__ import annotations

import enum
import os
import sys
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, Iterable, Optional, Tuple

from ..app_config import (
    APP_NAME,
    CONFIG_FILE_MODE,
    GLOBAL_CONFIG_NAME,
    LOCAL_CONFIG_NAME,
    global_dir_override,
)
from ..errors import ConfigError, ConfigNotFound, IoFailure, UnsupportedPlatform
from ..models import Config, SaveLocation

ConfirmOverwrite = Callable[[Path], bool]


def never_overwrite(path: Path) -> bool:
    return False


def platform_config_dir(platform: str, environ=None, home: Optional[Path] = None) -> Path:
    """Per-user config directory for `platform` (a sys.platform value)."""
    environ = os.environ if environ is None else environ
    home = Path.home() if home is None else home

    if platform.startswith("linux") or "bsd" in platform:
        xdg = environ.get("XDG_CONFIG_HOME")
        base = Path(xdg) if xdg else home / ".config"
        return base / APP_NAME
    if platform == "darwin":
        return home / "Library" / "Application Support" / APP_NAME
    if platform in ("win32", "cygwin"):
        appdata = environ.get("APPDATA")
        base = Path(appdata) if appdata else home / "AppData" / "Roaming"
        return base / APP_NAME
    raise UnsupportedPlatform(platform)


class SaveOutcome(enum.Enum):
    WRITTEN = "written"
    DECLINED = "declined"
    FAILED = "failed"


@dataclass(frozen=True)
class LocationResult:
    location: SaveLocation
    outcome: SaveOutcome
    path: Optional[Path] = None
    error: Optional[ConfigError] = None


@dataclass
class SaveReport:
    results: Dict[SaveLocation, LocationResult] = field(default_factory=dict)

    def add(self, result: LocationResult) -> None:
        self.results[result.location] = result

    def outcome(self, location: SaveLocation) -> SaveOutcome:
        return self.results[location].outcome

    @property
    def written(self) -> list[LocationResult]:
        return [r for r in self.results.values() if r.outcome is SaveOutcome.WRITTEN]

    @property
    def failed(self) -> list[LocationResult]:
        return [r for r in self.results.values() if r.outcome is SaveOutcome.FAILED]

    @property
    def ok(self) -> bool:
        return not self.failed


class ConfigStore:
    def __init__(
        self,
        cwd: Optional[Path] = None,
        global_dir: Optional[Path] = None,
        platform: Optional[str] = None,
        confirm: Optional[ConfirmOverwrite] = None,
    ):
        self.cwd = Path(cwd) if cwd is not None else Path.cwd()
        self._global_dir = Path(global_dir) if global_dir is not None else global_dir_override()
        self.platform = platform or sys.platform
        self.confirm: ConfirmOverwrite = confirm or never_overwrite

    # ---------- paths ----------

    @property
    def local_path(self) -> Path:
        return self.cwd / LOCAL_CONFIG_NAME

    def global_path(self) -> Path:
        base = self._global_dir if self._global_dir is not None else platform_config_dir(self.platform)
        return base / GLOBAL_CONFIG_NAME

    def path_for(self, location: SaveLocation) -> Path:
        if location is SaveLocation.LOCAL:
            return self.local_path
        return self.global_path()

    def resolve(self) -> Path:
        """First existing file in precedence order: local, then global."""
        local = self.local_path
        if local.is_file():
            return local
        glob = self.global_path()
        if glob.is_file():
            return glob
        raise ConfigNotFound([local, glob])

    # ---------- read ----------

    def read(self) -> Tuple[Path, Config]:
        path = self.resolve()
        try:
            raw = path.read_bytes()
        except OSError as e:
            raise IoFailure(path, e) from e
        return path, Config.loads(raw, path)

    # ---------- write ----------

    def save(self, config: Config, locations: Iterable[SaveLocation]) -> SaveReport:
        report = SaveReport()
        data = config.dumps()
        for location in _ordered(locations):
            report.add(self._save_one(location, data))
        return report

    def _save_one(self, location: SaveLocation, data: bytes) -> LocationResult:
        try:
            path = self.path_for(location)
        except UnsupportedPlatform as e:
            return LocationResult(location, SaveOutcome.FAILED, error=e)

        if path.exists() and not self.confirm(path):
            return LocationResult(location, SaveOutcome.DECLINED, path)

        try:
            atomic_write(path, data)
        except IoFailure as e:
            return LocationResult(location, SaveOutcome.FAILED, path, e)
        return LocationResult(location, SaveOutcome.WRITTEN, path)


def _ordered(locations: Iterable[SaveLocation]) -> list[SaveLocation]:
    wanted = set(locations)
    return [loc for loc in SaveLocation if loc in wanted]


def _fsync_dir_best_effort(directory: Path) -> None:
    """Persist the rename itself. Not available on Windows; failures are ignored."""
    if os.name != "posix":
        return
    try:
        fd = os.open(directory, os.O_RDONLY)
    except OSError:
        return
    try:
        os.fsync(fd)
    except OSError:
        pass
    finally:
        os.close(fd)


def atomic_write(path: Path, data: bytes, mode: int = CONFIG_FILE_MODE) -> None:
    """Write `data` to a temp file next to `path`, fsync it, then rename it into place."""
    tmp_name = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        if os.name == "posix":
            os.chmod(tmp_name, mode)
        os.replace(tmp_name, path)
        tmp_name = None
        _fsync_dir_best_effort(path.parent)
    except OSError as e:
        raise IoFailure(path, e) from e
    finally:
        if tmp_name is not None:
            try:
                os.unlink(tmp_name)
            except OSError:
                pass
