# src/testadapter/settings.py

"""
Default project settings resolver backed by a TOML project file.

A project file may contain a ``[project]`` table::

    [project]
    project_home = "."
    working_directory = "."
    interpreter_path = "tools/node"

All keys are optional. Relative paths are resolved against the directory
holding the project file (``project_home``) or the project root (the others).
"""

import shutil
import tomllib
from collections.abc import Mapping
from pathlib import Path

import structlog

from testadapter.exceptions import SettingsError
from testadapter.protocols import ProjectSettings
from testadapter.telemetry import StructLogger

log: StructLogger = structlog.get_logger("settings")

PROJECT_KEYS = frozenset({"project_home", "working_directory", "interpreter_path"})


def find_interpreter(name: str, project_root: Path, configured: str | None) -> Path:
    """
    Returns the absolute interpreter path.

    A configured path is taken relative to the project root. Without one, the
    interpreter is looked up on PATH; if it cannot be found the bare name is
    returned and the caller's existence check reports it.
    """
    if configured:
        path = Path(configured).expanduser()
        return path if path.is_absolute() else (project_root / path).resolve()

    found = shutil.which(name)
    return Path(found) if found else Path(name)


class TomlProjectSettingsResolver:
    """Implements the SettingsResolver protocol for TOML project files."""

    def __init__(self, default_interpreter: str = "node"):
        self._default_interpreter = default_interpreter

    def resolve(self, project_file: Path) -> ProjectSettings:
        settings_log = log.bind(project_file=str(project_file))
        settings_log.debug("Loading project settings", emoji_key="settings")

        try:
            data = tomllib.loads(project_file.read_text(encoding="utf-8"))
        except FileNotFoundError as e:
            raise SettingsError("Project file not found", project_file, e) from e
        except tomllib.TOMLDecodeError as e:
            raise SettingsError(f"Invalid TOML in project file: {e}", project_file, e) from e
        except OSError as e:
            raise SettingsError(f"Unable to read project file: {e}", project_file, e) from e

        project = data.get("project", {})
        if not isinstance(project, Mapping):
            raise SettingsError("[project] must be a table", project_file)
        for key in PROJECT_KEYS:
            value = project.get(key)
            if value is not None and not isinstance(value, str):
                raise SettingsError(f"[project] {key} must be a string", project_file)

        project_root = (project_file.parent / project.get("project_home", ".")).resolve()
        working_dir = (project_root / project.get("working_directory", ".")).resolve()
        interpreter = find_interpreter(
            self._default_interpreter, project_root, project.get("interpreter_path")
        )

        settings = ProjectSettings(
            interpreter_path=interpreter,
            working_dir=working_dir,
            project_root_dir=project_root,
        )
        settings_log.debug(
            "Project settings resolved",
            interpreter=str(settings.interpreter_path),
            working_dir=str(settings.working_dir),
            project_root=str(settings.project_root_dir),
        )
        return settings
