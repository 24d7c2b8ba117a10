"""PowerShell helpers.

Every management query and host source goes through :func:`run_ps`, which
spawns one PowerShell process per call and kills it on timeout.
"""

import json
import subprocess

from .config import DEFAULT_QUERY_TIMEOUT, POWERSHELL
from .errors import CommandError

# Only defined on Windows.
_CREATE_NO_WINDOW = getattr(subprocess, "CREATE_NO_WINDOW", 0)

# UTF-8 stdout so non-ASCII names survive decoding; errors become terminating.
_PREAMBLE = "[Console]::OutputEncoding = [System.Text.Encoding]::UTF8; $ErrorActionPreference = 'Stop'; "


def ps_quote(value: str) -> str:
    """Quote *value* as a literal single-quoted PowerShell string."""
    return "'" + str(value).replace("'", "''") + "'"


def run_ps(command: str, *, timeout: float = DEFAULT_QUERY_TIMEOUT) -> str:
    """Run a PowerShell command and return stdout.

    Non-terminating errors are promoted so that any failure shows up as a
    non-zero exit code.
    """
    script = f"{_PREAMBLE}{command}"
    try:
        r = subprocess.run(
            [POWERSHELL, "-NoProfile", "-NonInteractive", "-Command", script],
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
            timeout=timeout,
            creationflags=_CREATE_NO_WINDOW,
        )
    except subprocess.TimeoutExpired as exc:
        raise CommandError(f"timed out after {timeout:.0f}s", timed_out=True) from exc
    except OSError as exc:
        raise CommandError(f"cannot start {POWERSHELL}: {exc}") from exc

    if r.returncode != 0:
        err = (r.stderr or "").strip().splitlines()
        raise CommandError(err[0] if err else f"exit code {r.returncode}")
    return (r.stdout or "").strip()


def ps_json(command: str, *, timeout: float = DEFAULT_QUERY_TIMEOUT) -> list[dict]:
    """Run a PowerShell command that outputs objects, return them as a list."""
    raw = run_ps(f"{command} | ConvertTo-Json -Compress -Depth 3", timeout=timeout)
    if not raw:
        return []
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise CommandError(f"unparsable JSON output: {exc}") from exc
    if isinstance(data, dict):
        return [data]
    if isinstance(data, list):
        return [row for row in data if isinstance(row, dict)]
    raise CommandError(f"unexpected JSON output type {type(data).__name__}")
