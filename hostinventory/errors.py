"""Exception types raised across the inventory pipeline.

Host- and field-level failures (``QueryError``, ``ProbeTimeout``) are always
recovered inside :func:`hostinventory.probe.probe_host`. ``SourceUnavailable``
is recovered per category by the CLI. Only ``RenderError`` reaches the user.
"""


class InventoryError(Exception):
    """Base class for every error raised by hostinventory."""


class CommandError(InventoryError):
    """A PowerShell invocation failed, timed out, or printed unusable output."""

    def __init__(self, detail: str, *, timed_out: bool = False) -> None:
        super().__init__(detail)
        self.detail = detail
        self.timed_out = timed_out


class QueryError(InventoryError):
    """One management query against one host failed."""

    def __init__(self, host: str, query: str, detail: str) -> None:
        super().__init__(f"{host}: {query} failed: {detail}")
        self.host = host
        self.query = query
        self.detail = detail


class ProbeTimeout(QueryError):
    """The per-host probe budget ran out."""


class SourceUnavailable(InventoryError):
    """A host enumeration source could not be reached or queried."""

    def __init__(self, source: str, detail: str) -> None:
        super().__init__(f"{source} source unavailable: {detail}")
        self.source = source
        self.detail = detail


class RenderError(InventoryError):
    """A report artifact could not be written to its destination."""

    def __init__(self, path, detail: str) -> None:
        super().__init__(f"cannot write {path}: {detail}")
        self.path = path
        self.detail = detail
