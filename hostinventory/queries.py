"""Management queries against one host.

:class:`CimClient` asks a host for CIM classes through PowerShell. Each query
opens its own ``CimSession`` and removes it in a ``finally`` block, so nothing
is left open when a query fails or the process is killed on timeout.
:class:`LocalClient` answers the facts psutil knows about the machine it runs
on (fixed disks, network adapters, boot time) without a CIM round trip.
"""

import datetime
import logging
import socket
import time

import psutil

from .classify import parse_cim_datetime
from .config import DEFAULT_PROBE_TIMEOUT, DEFAULT_QUERY_TIMEOUT, InventoryOptions
from .errors import CommandError, ProbeTimeout, QueryError
from .shell import ps_json, ps_quote

logger = logging.getLogger(__name__)


class Deadline:
    """Time budget shared by every query of one probe."""

    def __init__(self, seconds: float = DEFAULT_PROBE_TIMEOUT, clock=time.monotonic) -> None:
        self.seconds = seconds
        self._clock = clock
        self._end = clock() + seconds

    def remaining(self) -> float:
        return max(self._end - self._clock(), 0.0)

    def expired(self) -> bool:
        return self.remaining() <= 0


class CimClient:
    """CIM queries for *host*, locally or over WinRM."""

    def __init__(
        self,
        host: str,
        *,
        is_local: bool = False,
        query_timeout: float = DEFAULT_QUERY_TIMEOUT,
        deadline: Deadline | None = None,
    ) -> None:
        self.host = host
        self.is_local = is_local
        self.query_timeout = query_timeout
        self.deadline = deadline or Deadline()

    # -- plumbing --------------------------------------------------------
    def _check_deadline(self, query: str) -> float:
        remaining = self.deadline.remaining()
        if remaining <= 0:
            raise ProbeTimeout(
                self.host, query, f"probe budget of {self.deadline.seconds:.0f}s exhausted"
            )
        return min(self.query_timeout, remaining)

    def _session(self) -> str:
        if self.is_local:
            return "New-CimSession"
        return f"New-CimSession -ComputerName {ps_quote(self.host)}"

    def _script(
        self,
        class_name: str,
        properties: tuple[str, ...],
        *,
        wql_filter: str | None = None,
        require_rows: bool = False,
        timeout: float = DEFAULT_QUERY_TIMEOUT,
    ) -> str:
        get = f"Get-CimInstance -CimSession $session -ClassName {class_name}"
        if wql_filter:
            get += f" -Filter {ps_quote(wql_filter)}"
        guard = ""
        if require_rows:
            guard = f"if ($rows.Count -eq 0) {{ throw 'no {class_name} instance matched' }}; "
        return (
            f"$session = {self._session()} -OperationTimeoutSec {max(int(timeout), 1)}; "
            f"try {{ $rows = @({get}); {guard}}} "
            f"finally {{ Remove-CimSession -CimSession $session }}; "
            f"$rows | Select-Object {', '.join(properties)}"
        )

    def _query(self, query: str, class_name: str, properties: tuple[str, ...], **kwargs) -> list[dict]:
        timeout = self._check_deadline(query)
        script = self._script(class_name, properties, timeout=timeout, **kwargs)
        logger.debug("%s: querying %s", self.host, class_name)
        try:
            return ps_json(script, timeout=timeout)
        except CommandError as exc:
            if exc.timed_out and self.deadline.expired():
                raise ProbeTimeout(self.host, query, exc.detail) from exc
            raise QueryError(self.host, query, exc.detail) from exc

    def _single(self, query: str, class_name: str, properties: tuple[str, ...]) -> dict:
        rows = self._query(query, class_name, properties)
        if not rows:
            raise QueryError(self.host, query, f"no {class_name} instance returned")
        return rows[0]

    # -- mandatory facts -------------------------------------------------
    def query_operating_system(self) -> dict:
        return self._single(
            "operating system",
            "Win32_OperatingSystem",
            ("Caption", "Version", "LastBootUpTime"),
        )

    def query_computer_system(self) -> dict:
        return self._single(
            "computer system",
            "Win32_ComputerSystem",
            ("Manufacturer", "Model", "TotalPhysicalMemory"),
        )

    def query_processor(self) -> list[dict]:
        rows = self._query(
            "processor",
            "Win32_Processor",
            ("Name", "NumberOfCores", "NumberOfLogicalProcessors"),
        )
        if not rows:
            raise QueryError(self.host, "processor", "no Win32_Processor instance returned")
        return rows

    def last_boot_time(self, os_facts: dict) -> datetime.datetime:
        try:
            return parse_cim_datetime(os_facts.get("LastBootUpTime"))
        except ValueError as exc:
            raise QueryError(self.host, "boot time", str(exc)) from exc

    # -- optional facts --------------------------------------------------
    def query_bios(self) -> dict:
        return self._single("bios", "Win32_BIOS", ("Manufacturer", "SMBIOSBIOSVersion"))

    def query_network_adapters(self) -> list[dict]:
        return self._query(
            "network adapters",
            "Win32_NetworkAdapterConfiguration",
            ("Description", "IPEnabled", "IPAddress", "MACAddress"),
            wql_filter="IPEnabled = TRUE",
        )

    def query_logical_disks(self) -> list[dict]:
        return self._query(
            "logical disks",
            "Win32_LogicalDisk",
            ("DeviceID", "FreeSpace", "Size"),
            wql_filter="DriveType = 3",
        )

    def query_services(self, name_filter: str) -> list[dict]:
        """Installed services whose name matches *name_filter* (WQL).

        Raises :class:`QueryError` when none match, i.e. the product is absent.
        """
        return self._query(
            f"services [{name_filter}]",
            "Win32_Service",
            ("Name", "State"),
            wql_filter=name_filter,
            require_rows=True,
        )


class LocalClient(CimClient):
    """CIM for the machine we run on, with psutil for the facts it covers."""

    def __init__(self, host: str | None = None, **kwargs) -> None:
        kwargs["is_local"] = True
        super().__init__(host or socket.gethostname(), **kwargs)

    def last_boot_time(self, os_facts: dict) -> datetime.datetime:
        return datetime.datetime.fromtimestamp(psutil.boot_time())

    def query_logical_disks(self) -> list[dict]:
        self._check_deadline("logical disks")
        disks: list[dict] = []
        for part in psutil.disk_partitions(all=False):
            opts = part.opts.lower()
            if "cdrom" in opts or "removable" in opts:
                continue
            try:
                usage = psutil.disk_usage(part.mountpoint)
            except (PermissionError, OSError):
                continue
            device = part.mountpoint.rstrip("\\") or part.mountpoint
            disks.append({"DeviceID": device, "FreeSpace": usage.free, "Size": usage.total})
        return disks

    def query_network_adapters(self) -> list[dict]:
        self._check_deadline("network adapters")
        stats = psutil.net_if_stats()
        adapters: list[dict] = []
        for name, addrs in psutil.net_if_addrs().items():
            st = stats.get(name)
            if st is None or not st.isup:
                continue
            ips = [
                a.address for a in addrs
                if a.family == socket.AF_INET and not a.address.startswith("127.")
            ]
            if not ips:
                continue
            mac = next((a.address for a in addrs if a.family == psutil.AF_LINK), None)
            adapters.append({
                "Description": name,
                "IPEnabled": True,
                "IPAddress": ips,
                "MACAddress": mac.upper().replace("-", ":") if mac else None,
            })
        return adapters


def default_client_factory(
    host: str, *, is_local: bool, options: InventoryOptions, deadline: Deadline
) -> CimClient:
    cls = LocalClient if is_local else CimClient
    return cls(host, query_timeout=options.query_timeout, deadline=deadline)
