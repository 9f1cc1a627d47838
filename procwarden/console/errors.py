"""Console dispatch exception hierarchy."""


class ConsoleError(Exception):
    """Base error type for command resolution and execution failures."""

    code = 1

    def __init__(self, message: str, *, code: int | None = None):
        super().__init__(message)
        if code is not None:
            self.code = code


class CommandNotFoundError(ConsoleError):
    """No console application is registered under the requested name."""

    code = 127

    def __init__(self, app_name: str):
        super().__init__(f"{app_name}: command not found")
        self.app_name = app_name


class CommandLoadError(ConsoleError):
    """A registered console application could not be imported or built."""

    code = 126
