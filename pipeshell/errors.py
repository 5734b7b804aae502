class ShellError(Exception):
    """Base class for failures that abort a single pipeline."""

    status = 1


class CommandNotFound(ShellError):
    status = 127

    def __init__(self, name):
        super().__init__(f"{name}: command not found")
        self.name = name


class SpawnError(ShellError):
    status = 126

    def __init__(self, name, error):
        super().__init__(f"{name}: {error.strerror or error}")
        self.name = name
        self.error = error


class RedirectionError(ShellError):
    def __init__(self, target, error):
        super().__init__(f"{target}: {error.strerror or error}")
        self.target = target
        self.error = error
