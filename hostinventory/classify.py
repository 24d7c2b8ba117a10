"""Pure derivations over raw CIM facts.

Nothing in here performs I/O; every function takes the dictionaries that
``Get-CimInstance ... | ConvertTo-Json`` produces (or the psutil equivalents
built by :class:`hostinventory.queries.LocalClient`) and returns report text.
"""

import datetime
import re
from collections.abc import Iterable

from .config import NOT_AVAILABLE, VIRTUAL_INDICATORS
from .models import ServiceStatus

GIB = 1024 ** 3

# PowerShell 5.1 serializes DateTime as "/Date(1700000000000)/".
_MS_DATE_RE = re.compile(r"/Date\((-?\d+)(?:[+-]\d{4})?\)/")
# WMI DMTF datetime: yyyymmddHHMMSS.ffffff+UUU (offset in minutes).
_DMTF_RE = re.compile(r"^(\d{14})\.(\d{6})([+-])(\d{3})$")
# Windows emits seven fractional digits; datetime accepts at most six.
_LONG_FRACTION_RE = re.compile(r"(\.\d{6})\d+")


def is_virtual(model: str | None, indicators: Iterable[str] = VIRTUAL_INDICATORS) -> bool:
    """True when the chassis model names a hypervisor or cloud platform."""
    if not model:
        return False
    text = model.lower()
    return any(ind.lower() in text for ind in indicators)


def parse_cim_datetime(value) -> datetime.datetime:
    """Parse a CIM date as a naive local datetime."""
    text = str(value or "").strip()
    m = _MS_DATE_RE.search(text)
    if m:
        return datetime.datetime.fromtimestamp(int(m.group(1)) / 1000)

    m = _DMTF_RE.match(text)
    if m:
        stamp, micro, sign, offset = m.groups()
        minutes = int(offset) if sign == "+" else -int(offset)
        tz = datetime.timezone(datetime.timedelta(minutes=minutes))
        parsed = datetime.datetime.strptime(stamp, "%Y%m%d%H%M%S")
        parsed = parsed.replace(microsecond=int(micro), tzinfo=tz)
        return parsed.astimezone().replace(tzinfo=None)

    if not text:
        raise ValueError("empty CIM datetime")
    parsed = datetime.datetime.fromisoformat(_LONG_FRACTION_RE.sub(r"\1", text))
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def uptime_days(boot: datetime.datetime, now: datetime.datetime) -> float:
    """Days between *boot* and *now*, one decimal, never negative."""
    seconds = max((now - boot).total_seconds(), 0.0)
    return round(seconds / 86400, 1)


def format_bios(bios: dict | None) -> str:
    if not bios:
        return NOT_AVAILABLE
    parts = [
        str(bios.get("Manufacturer") or "").strip(),
        str(bios.get("SMBIOSBIOSVersion") or "").strip(),
    ]
    text = " ".join(p for p in parts if p)
    return text or NOT_AVAILABLE


def format_network_summary(adapters: Iterable[dict] | None) -> str:
    """Describe the first IP-enabled adapter.

    "First" is the order the query returned; CIM does not guarantee it is
    stable across hosts or runs.
    """
    for adapter in adapters or ():
        if not adapter.get("IPEnabled"):
            continue
        addresses = adapter.get("IPAddress") or []
        if isinstance(addresses, str):
            addresses = [addresses]
        ip = addresses[0] if addresses else NOT_AVAILABLE
        mac = adapter.get("MACAddress") or NOT_AVAILABLE
        return f"IP: {ip}, MAC: {mac}"
    return NOT_AVAILABLE


def format_disk_summary(disks: Iterable[dict] | None) -> str:
    """One "<id>: <free>GB free of <total>GB" entry per fixed volume."""
    parts: list[str] = []
    for d in disks or ():
        size = d.get("Size")
        if not size:
            continue
        free = d.get("FreeSpace") or 0
        parts.append(
            f"{str(d.get('DeviceID') or '?').rstrip(':')}: "
            f"{round(int(free) / GIB, 1)}GB free of {round(int(size) / GIB, 1)}GB"
        )
    return "; ".join(parts) if parts else NOT_AVAILABLE


def service_status(services: Iterable[dict]) -> ServiceStatus:
    """Fold the services of one family into a tri-state status.

    *services* are the installed services that matched the family filter.
    """
    running = [
        str(s.get("Name"))
        for s in services
        if str(s.get("State") or "").lower() == "running" and s.get("Name")
    ]
    if running:
        return ServiceStatus.running(running)
    return ServiceStatus.installed_not_running()
