"""Where the host names of each category come from."""

import logging
import socket

from .config import CLOUD_SOURCE_TIMEOUT, SOURCE_TIMEOUT
from .errors import CommandError, SourceUnavailable
from .shell import ps_json, ps_quote

logger = logging.getLogger(__name__)


def _names(rows: list[dict], key: str) -> list[str]:
    out = []
    for row in rows:
        name = str(row.get(key) or "").strip()
        if name:
            out.append(name)
    return out


def local_hosts() -> list[str]:
    return [socket.gethostname()]


def directory_hosts(server: str, *, timeout: float = SOURCE_TIMEOUT) -> list[str]:
    """Computer objects known to the Active Directory domain controller *server*."""
    command = (
        "Import-Module ActiveDirectory; "
        f"Get-ADComputer -Filter * -Server {ps_quote(server)} | Select-Object Name"
    )
    try:
        rows = ps_json(command, timeout=timeout)
    except CommandError as exc:
        raise SourceUnavailable("directory", exc.detail) from exc
    names = _names(rows, "Name")
    logger.info("directory %s: %d computers", server, len(names))
    return names


def cloud_directory_hosts(*, timeout: float = CLOUD_SOURCE_TIMEOUT) -> list[str]:
    """Device display names registered in Entra ID (via Microsoft Graph)."""
    command = (
        "Import-Module Microsoft.Graph.Identity.DirectoryManagement; "
        "Connect-MgGraph -Scopes 'Device.Read.All' -NoWelcome; "
        "Get-MgDevice -All | Select-Object DisplayName"
    )
    try:
        rows = ps_json(command, timeout=timeout)
    except CommandError as exc:
        raise SourceUnavailable("cloud directory", exc.detail) from exc
    names = _names(rows, "DisplayName")
    logger.info("cloud directory: %d devices", len(names))
    return names
