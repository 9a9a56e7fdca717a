"""Progress errors."""


class ProgressError(Exception):
    """Base progress error."""

    def __init__(self, message: str, code: str = "progress_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class PersistenceTransientFailure(ProgressError):
    """A progress write did not reach the store.

    The in-memory state is kept; the next tick retries.
    """

    def __init__(self, message: str = "Progress could not be saved", kind: str | None = None):
        super().__init__(message, "persistence_transient")
        self.kind = kind
