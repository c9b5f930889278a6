# src/testadapter/exceptions.py

"""
Custom exceptions raised by testadapter components.
"""

from pathlib import Path


class TestAdapterError(Exception):
    """Base class for all testadapter errors."""

    __test__ = False


class ConfigurationError(TestAdapterError):
    """Raised when the adapter configuration cannot be loaded or validated."""

    def __init__(self, message: str, path: str | Path | None = None):
        self.path = path
        full_message = message
        if path:
            full_message += f" (Config: '{path}')"
        super().__init__(full_message)


class SettingsError(TestAdapterError):
    """Raised when project settings for a test source cannot be resolved."""

    def __init__(
        self,
        message: str,
        project_file: str | Path | None = None,
        details: Exception | None = None,
    ):
        self.project_file = project_file
        self.details = details
        full_message = message
        if project_file:
            full_message += f" (Project: '{project_file}')"
        super().__init__(full_message)
        if details and hasattr(self, "add_note"):
            self.add_note(f"Original error: {type(details).__name__}: {details}")


class InvalidTestIdError(TestAdapterError, ValueError):
    """Raised when a fully-qualified test name cannot be parsed."""

    pass


class InterpreterNotFoundError(TestAdapterError):
    """Raised when the configured interpreter executable does not exist."""

    def __init__(self, interpreter_path: str | Path):
        self.interpreter_path = interpreter_path
        super().__init__(f"Interpreter path does not exist: {interpreter_path}")


class UnsupportedFrameworkError(TestAdapterError):
    """Raised when a test declares a framework with no registered runner."""

    pass


class ProcessLaunchError(TestAdapterError):
    """Raised when the interpreter process cannot be started."""

    pass


class DebuggerAttachError(TestAdapterError):
    """Raised when the debugger fails to attach to the interpreter process."""

    pass


class PortSearchError(DebuggerAttachError):
    """Raised when no free debug port could be found."""

    pass
