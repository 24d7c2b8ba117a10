"""Shared fixtures: a scripted management client standing in for CIM."""

import datetime

import pytest

from hostinventory.errors import ProbeTimeout, QueryError
from hostinventory.models import InventoryRecord, ServiceStatus

BOOT = datetime.datetime(2024, 3, 1, 8, 0, 0)
NOW = datetime.datetime(2024, 3, 11, 20, 0, 0)

OS_FACTS = {
    "Caption": "Microsoft Windows Server 2022 Standard",
    "Version": "10.0.20348",
    "LastBootUpTime": "2024-03-01T08:00:00",
}
SYSTEM_FACTS = {
    "Manufacturer": "Dell Inc.",
    "Model": "PowerEdge R740",
    "TotalPhysicalMemory": 68719476736,
}
CPU_FACTS = [
    {"Name": "Intel(R) Xeon(R) Gold 6130 CPU @ 2.10GHz", "NumberOfCores": 16,
     "NumberOfLogicalProcessors": 32},
    {"Name": "Intel(R) Xeon(R) Gold 6130 CPU @ 2.10GHz", "NumberOfCores": 16,
     "NumberOfLogicalProcessors": 32},
]


class FakeClient:
    """Answers queries from a dict; values that are exceptions get raised.

    ``services`` maps a WQL filter to the rows (or exception) for that family;
    families missing from the map raise QueryError like an absent product.
    """

    def __init__(self, host, *, is_local=False, options=None, deadline=None, **answers):
        self.host = host
        self.is_local = is_local
        self.deadline = deadline
        self.answers = {
            "os": dict(OS_FACTS),
            "system": dict(SYSTEM_FACTS),
            "cpu": list(CPU_FACTS),
            "bios": {"Manufacturer": "Dell Inc.", "SMBIOSBIOSVersion": "2.19.1"},
            "network": [
                {"Description": "Loopback", "IPEnabled": False},
                {"Description": "Broadcom", "IPEnabled": True,
                 "IPAddress": ["10.0.0.5", "fe80::1"], "MACAddress": "00:11:22:33:44:55"},
            ],
            "disks": [{"DeviceID": "C:", "FreeSpace": 53687091200, "Size": 107374182400}],
            "services": {},
        }
        self.answers.update(answers)

    def _answer(self, key, query):
        value = self.answers[key]
        if isinstance(value, Exception):
            raise value
        return value

    def query_operating_system(self):
        return self._answer("os", "operating system")

    def query_computer_system(self):
        return self._answer("system", "computer system")

    def query_processor(self):
        return self._answer("cpu", "processor")

    def last_boot_time(self, os_facts):
        return datetime.datetime.fromisoformat(os_facts["LastBootUpTime"])

    def query_bios(self):
        return self._answer("bios", "bios")

    def query_network_adapters(self):
        return self._answer("network", "network adapters")

    def query_logical_disks(self):
        return self._answer("disks", "logical disks")

    def query_services(self, name_filter):
        value = self.answers["services"].get(name_filter)
        if value is None:
            raise QueryError(self.host, "services", "no Win32_Service instance matched")
        if isinstance(value, Exception):
            raise value
        return value


def fake_factory(**answers):
    """A client_factory for probe_host that builds FakeClients."""
    created = []

    def factory(host, *, is_local, options, deadline):
        client = FakeClient(host, is_local=is_local, deadline=deadline, **answers)
        created.append(client)
        return client

    factory.created = created
    return factory


def make_record(host="SQL01", **overrides) -> InventoryRecord:
    values = dict(
        host_name=host,
        os_name="Microsoft Windows Server 2022 Standard",
        os_version="10.0.20348",
        manufacturer="Dell Inc.",
        model="PowerEdge R740",
        is_virtual=False,
        total_physical_memory_bytes=68719476736,
        cpu_name="Intel(R) Xeon(R) Gold 6130 CPU @ 2.10GHz",
        cpu_core_count=32,
        cpu_logical_processor_count=64,
        sql_database_engine_status=ServiceStatus.not_found(),
        sql_integration_services_status=ServiceStatus.not_found(),
        sql_reporting_services_status=ServiceStatus.not_found(),
        bios_info="Dell Inc. 2.19.1",
        network_info="IP: 10.0.0.5, MAC: 00:11:22:33:44:55",
        disk_summary="C: 50.0GB free of 100.0GB",
        last_boot_time=BOOT,
        uptime_days=10.5,
    )
    values.update(overrides)
    return InventoryRecord(**values)


@pytest.fixture
def record_factory():
    return make_record


@pytest.fixture
def timeout_error():
    return ProbeTimeout("SQL01", "bios", "probe budget of 120s exhausted")
