"""Run :func:`probe_host` over a list of hosts in parallel."""

import concurrent.futures
import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field

from .config import InventoryOptions
from .models import InventoryRecord, ProbeFailure, ProbeResult
from .probe import probe_host

logger = logging.getLogger(__name__)

MODES = ("local", "remote")


@dataclass(frozen=True)
class CollectionResult:
    records: list[InventoryRecord] = field(default_factory=list)
    failures: list[ProbeFailure] = field(default_factory=list)


def dedupe_hosts(host_names: Iterable[str]) -> list[str]:
    """Drop case-insensitive repeats, keeping the first spelling."""
    seen: set[str] = set()
    out: list[str] = []
    for name in host_names:
        key = name.lower()
        if key not in seen:
            seen.add(key)
            out.append(name)
    return out


def collect(
    host_names: Iterable[str],
    mode: str = "remote",
    options: InventoryOptions | None = None,
    *,
    probe: Callable[..., ProbeResult] = probe_host,
) -> CollectionResult:
    """Probe every host once and return the successes in input order.

    Failed hosts are logged and left out of ``records``; they are never
    retried and never stop the rest of the batch.
    """
    if mode not in MODES:
        raise ValueError(f"mode must be one of {MODES}, not {mode!r}")
    options = options or InventoryOptions()
    names = list(host_names)
    if options.dedupe:
        names = dedupe_hosts(names)
    if not names:
        return CollectionResult()

    is_local = mode == "local"
    results: list[ProbeResult | None] = [None] * len(names)

    with concurrent.futures.ThreadPoolExecutor(
        max_workers=min(options.max_workers, len(names))
    ) as pool:
        futures = {
            pool.submit(probe, name, is_local, options=options): idx
            for idx, name in enumerate(names)
        }
        for future in concurrent.futures.as_completed(futures):
            idx = futures[future]
            try:
                results[idx] = future.result()
            except Exception as exc:
                logger.exception("%s: probe crashed", names[idx])
                results[idx] = ProbeFailure(names[idx], f"unexpected error: {exc}")

    records: list[InventoryRecord] = []
    failures: list[ProbeFailure] = []
    for result in results:
        if isinstance(result, InventoryRecord):
            records.append(result)
        else:
            logger.warning(
                "%s: skipped (%s)%s",
                result.host, result.cause, " [timeout]" if result.timed_out else "",
            )
            failures.append(result)

    logger.info("collected %d of %d hosts (%d failed)", len(records), len(names), len(failures))
    return CollectionResult(records, failures)
