"""Inventory record types."""

import datetime
from dataclasses import dataclass, fields
from typing import TypeAlias

from .config import TIMESTAMP_FORMAT

NOT_FOUND = "NotFound"
INSTALLED_NOT_RUNNING = "InstalledNotRunning"
RUNNING = "Running"


@dataclass(frozen=True)
class ServiceStatus:
    """Tri-state status of one SQL Server service family on one host.

    Build it with :meth:`not_found`, :meth:`installed_not_running` or
    :meth:`running`; a running status always carries at least one name.
    """

    state: str
    names: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if self.state == RUNNING:
            if not self.names:
                raise ValueError("a running status needs at least one service name")
        elif self.state in (NOT_FOUND, INSTALLED_NOT_RUNNING):
            if self.names:
                raise ValueError(f"{self.state} carries no service names")
        else:
            raise ValueError(f"unknown service state {self.state!r}")

    @classmethod
    def not_found(cls) -> "ServiceStatus":
        return cls(NOT_FOUND)

    @classmethod
    def installed_not_running(cls) -> "ServiceStatus":
        return cls(INSTALLED_NOT_RUNNING)

    @classmethod
    def running(cls, names) -> "ServiceStatus":
        return cls(RUNNING, tuple(names))

    @property
    def is_found(self) -> bool:
        return self.state != NOT_FOUND

    @property
    def is_running(self) -> bool:
        return self.state == RUNNING

    def __str__(self) -> str:
        if self.state == RUNNING:
            return ", ".join(self.names)
        return self.state


@dataclass(frozen=True)
class InventoryRecord:
    """Facts about one successfully probed host."""

    host_name: str
    os_name: str
    os_version: str
    manufacturer: str
    model: str
    is_virtual: bool
    total_physical_memory_bytes: int
    cpu_name: str
    cpu_core_count: int
    cpu_logical_processor_count: int
    sql_database_engine_status: ServiceStatus
    sql_integration_services_status: ServiceStatus
    sql_reporting_services_status: ServiceStatus
    bios_info: str
    network_info: str
    disk_summary: str
    last_boot_time: datetime.datetime
    uptime_days: float

    def as_row(self) -> list:
        """Field values in export order."""
        return [getattr(self, f.name) for f in fields(self)]

    def as_dict(self) -> dict:
        """JSON-safe mapping keyed by the exported field names."""
        out = {}
        for name, value in zip(FIELD_NAMES, self.as_row()):
            if isinstance(value, (bool, int, float)):
                out[name] = value
            else:
                out[name] = format_value(value)
        return out


# Exported column names, in the order of the dataclass fields above.
FIELD_NAMES: tuple[str, ...] = (
    "HostName",
    "OSName",
    "OSVersion",
    "Manufacturer",
    "Model",
    "IsVirtual",
    "TotalPhysicalMemoryBytes",
    "CPUName",
    "CPUCoreCount",
    "CPULogicalProcessorCount",
    "SQLDatabaseEngineStatus",
    "SQLIntegrationServicesStatus",
    "SQLReportingServicesStatus",
    "BIOSInfo",
    "NetworkInfo",
    "DiskSummary",
    "LastBootTime",
    "UptimeDays",
)


@dataclass(frozen=True)
class ProbeFailure:
    """A host whose mandatory facts could not be collected."""

    host: str
    cause: str
    timed_out: bool = False


ProbeResult: TypeAlias = InventoryRecord | ProbeFailure


def format_value(value) -> str:
    """Render one record field as export text."""
    if isinstance(value, datetime.datetime):
        return value.strftime(TIMESTAMP_FORMAT)
    if isinstance(value, bool):
        return str(value)
    if isinstance(value, float):
        return f"{value:.1f}"
    return str(value)
