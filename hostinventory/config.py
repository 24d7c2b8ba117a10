"""Configuration constants and run options."""

import os
from dataclasses import dataclass

# ---------------------------------------------------------------------------
# PowerShell
# ---------------------------------------------------------------------------
POWERSHELL = "powershell" if os.name == "nt" else "pwsh"

DEFAULT_QUERY_TIMEOUT = 30.0     # seconds, one CIM query
DEFAULT_PROBE_TIMEOUT = 120.0    # seconds, every query of one host
DEFAULT_MAX_WORKERS = 8
SOURCE_TIMEOUT = 120.0           # directory enumeration
CLOUD_SOURCE_TIMEOUT = 300.0     # Graph sign-in may be interactive

# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------
NOT_AVAILABLE = "N/A"

# Substrings of Win32_ComputerSystem.Model that identify a virtual machine.
VIRTUAL_INDICATORS: tuple[str, ...] = (
    "Virtual",
    "VMware",
    "Hyper-V",
    "KVM",
    "VirtualBox",
    "Xen",
    "QEMU",
    "Parallels",
    "Amazon EC2",
    "Google Compute Engine",
)

# WQL filters on Win32_Service.Name, one per SQL Server service family.
DATABASE_ENGINE_FILTER = "Name = 'MSSQLSERVER' OR Name LIKE 'MSSQL$%'"
INTEGRATION_SERVICES_FILTER = "Name LIKE 'MsDtsServer%'"
REPORTING_SERVICES_FILTER = (
    "Name LIKE 'ReportServer%' OR Name = 'SQLServerReportingServices'"
    " OR Name = 'PowerBIReportServer'"
)

# ---------------------------------------------------------------------------
# Output
# ---------------------------------------------------------------------------
OUTPUT_STEM = "HostInventory-{category}"
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


@dataclass(frozen=True)
class InventoryOptions:
    """Knobs for one collection run, overridable from the command line."""

    max_workers: int = DEFAULT_MAX_WORKERS
    probe_timeout: float = DEFAULT_PROBE_TIMEOUT
    query_timeout: float = DEFAULT_QUERY_TIMEOUT
    dedupe: bool = False
    virtual_indicators: tuple[str, ...] = VIRTUAL_INDICATORS

    def __post_init__(self) -> None:
        if self.max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        if self.probe_timeout <= 0 or self.query_timeout <= 0:
            raise ValueError("timeouts must be positive")
