"""Probe one host and turn its CIM facts into an :class:`InventoryRecord`.

Mandatory facts (operating system, computer system, processor) fail the whole
host. Service lookups fall back to ``NotFound`` and optional facts to "N/A",
each on its own, so one broken query never costs the rest of the record.
Running out of the probe's time budget fails the host wherever it happens.
"""

import datetime
import logging
from collections.abc import Callable

from . import classify
from .config import (
    DATABASE_ENGINE_FILTER,
    INTEGRATION_SERVICES_FILTER,
    NOT_AVAILABLE,
    REPORTING_SERVICES_FILTER,
    InventoryOptions,
)
from .errors import ProbeTimeout, QueryError
from .models import InventoryRecord, ProbeFailure, ProbeResult, ServiceStatus
from .queries import CimClient, Deadline, default_client_factory

logger = logging.getLogger(__name__)

# Raised by formatters fed with malformed CIM output.
_DATA_ERRORS = (KeyError, TypeError, ValueError, AttributeError)


def _service(client: CimClient, name_filter: str) -> ServiceStatus:
    try:
        return classify.service_status(client.query_services(name_filter))
    except ProbeTimeout:
        raise
    except (QueryError, *_DATA_ERRORS) as exc:
        logger.debug("%s: service lookup [%s] -> NotFound (%s)", client.host, name_filter, exc)
        return ServiceStatus.not_found()


def _optional(client: CimClient, label: str, query: Callable, formatter: Callable) -> str:
    try:
        return formatter(query())
    except ProbeTimeout:
        raise
    except (QueryError, *_DATA_ERRORS) as exc:
        logger.debug("%s: %s unavailable (%s)", client.host, label, exc)
        return NOT_AVAILABLE


def _build_record(
    client: CimClient,
    options: InventoryOptions,
    now: datetime.datetime | None,
) -> InventoryRecord:
    os_facts = client.query_operating_system()
    system = client.query_computer_system()
    cpus = client.query_processor()
    try:
        memory = int(system.get("TotalPhysicalMemory") or 0)
        cores = sum(int(c.get("NumberOfCores") or 0) for c in cpus)
        threads = sum(int(c.get("NumberOfLogicalProcessors") or 0) for c in cpus)
    except (TypeError, ValueError) as exc:
        raise QueryError(client.host, "computer system", f"malformed counters: {exc}") from exc
    boot = client.last_boot_time(os_facts)
    model = str(system.get("Model") or "").strip()

    database = _service(client, DATABASE_ENGINE_FILTER)
    integration = _service(client, INTEGRATION_SERVICES_FILTER)
    reporting = _service(client, REPORTING_SERVICES_FILTER)

    bios = _optional(client, "BIOS", client.query_bios, classify.format_bios)
    network = _optional(
        client, "network", client.query_network_adapters, classify.format_network_summary
    )
    disks = _optional(client, "disks", client.query_logical_disks, classify.format_disk_summary)

    return InventoryRecord(
        host_name=client.host,
        os_name=str(os_facts.get("Caption") or "").strip(),
        os_version=str(os_facts.get("Version") or "").strip(),
        manufacturer=str(system.get("Manufacturer") or "").strip(),
        model=model,
        is_virtual=classify.is_virtual(model, options.virtual_indicators),
        total_physical_memory_bytes=max(memory, 0),
        cpu_name=str(cpus[0].get("Name") or "").strip(),
        cpu_core_count=max(cores, 0),
        cpu_logical_processor_count=max(threads, 0),
        sql_database_engine_status=database,
        sql_integration_services_status=integration,
        sql_reporting_services_status=reporting,
        bios_info=bios,
        network_info=network,
        disk_summary=disks,
        last_boot_time=boot,
        uptime_days=classify.uptime_days(boot, now or datetime.datetime.now()),
    )


def probe_host(
    host: str,
    is_local: bool = False,
    *,
    options: InventoryOptions | None = None,
    client_factory: Callable[..., CimClient] = default_client_factory,
    now: datetime.datetime | None = None,
) -> ProbeResult:
    """Collect one host's inventory record, or describe why it failed.

    Never raises for query failures; the result is either an
    :class:`InventoryRecord` or a :class:`ProbeFailure`.
    """
    options = options or InventoryOptions()
    deadline = Deadline(options.probe_timeout)
    try:
        client = client_factory(host, is_local=is_local, options=options, deadline=deadline)
        return _build_record(client, options, now)
    except ProbeTimeout as exc:
        return ProbeFailure(host, str(exc), timed_out=True)
    except QueryError as exc:
        return ProbeFailure(host, str(exc))
