import datetime

import pytest

from hostinventory import classify
from hostinventory.models import ServiceStatus


@pytest.mark.parametrize(
    "model, expected",
    [
        ("Virtual Machine", True),
        ("VMware7,1", True),
        ("VMWARE VIRTUAL PLATFORM", True),
        ("Standard PC (Q35 + ICH9, 2009) KVM", True),
        ("HVM domU (Xen)", True),
        ("VirtualBox", True),
        ("PowerEdge R740", False),
        ("ProLiant DL380 Gen10", False),
        ("", False),
        (None, False),
    ],
)
def test_is_virtual(model, expected):
    assert classify.is_virtual(model) is expected


def test_is_virtual_uses_given_indicators():
    assert classify.is_virtual("Nutanix AHV", ("ahv",))
    assert not classify.is_virtual("Virtual Machine", ("nutanix",))


def test_parse_ms_json_date():
    value = "/Date(1709280000000)/"
    assert classify.parse_cim_datetime(value) == datetime.datetime.fromtimestamp(1709280000)


def test_parse_iso_date_with_seven_digit_fraction():
    parsed = classify.parse_cim_datetime("2024-03-01T08:00:00.1234567")
    assert parsed == datetime.datetime(2024, 3, 1, 8, 0, 0, 123456)


def test_parse_iso_date_with_offset_is_local_naive():
    parsed = classify.parse_cim_datetime("2024-03-01T08:00:00+00:00")
    expected = datetime.datetime(2024, 3, 1, 8, 0, tzinfo=datetime.timezone.utc)
    assert parsed.tzinfo is None
    assert parsed == expected.astimezone().replace(tzinfo=None)


def test_parse_dmtf_date():
    parsed = classify.parse_cim_datetime("20240301080000.000000+060")
    expected = datetime.datetime(
        2024, 3, 1, 8, 0, tzinfo=datetime.timezone(datetime.timedelta(hours=1))
    )
    assert parsed == expected.astimezone().replace(tzinfo=None)


@pytest.mark.parametrize("value", [None, "", "yesterday"])
def test_parse_rejects_garbage(value):
    with pytest.raises(ValueError):
        classify.parse_cim_datetime(value)


def test_uptime_days_rounds_to_one_decimal():
    boot = datetime.datetime(2024, 3, 1, 8, 0)
    assert classify.uptime_days(boot, datetime.datetime(2024, 3, 11, 20, 0)) == 10.5
    assert classify.uptime_days(boot, datetime.datetime(2024, 3, 1, 9, 0)) == 0.0


def test_uptime_days_clamps_clock_skew():
    boot = datetime.datetime(2024, 3, 2)
    assert classify.uptime_days(boot, datetime.datetime(2024, 3, 1)) == 0.0


def test_disk_summary_formats_each_volume():
    disks = [
        {"DeviceID": "C:", "FreeSpace": 53687091200, "Size": 107374182400},
        {"DeviceID": "D:", "FreeSpace": 1610612736, "Size": 2147483648},
    ]
    assert classify.format_disk_summary(disks) == (
        "C: 50.0GB free of 100.0GB; D: 1.5GB free of 2.0GB"
    )


def test_disk_summary_without_volumes():
    assert classify.format_disk_summary([]) == "N/A"
    assert classify.format_disk_summary([{"DeviceID": "E:", "Size": None}]) == "N/A"


def test_network_summary_picks_first_enabled_adapter():
    adapters = [
        {"IPEnabled": False, "IPAddress": ["169.254.1.1"], "MACAddress": "AA"},
        {"IPEnabled": True, "IPAddress": ["10.0.0.5", "fe80::1"], "MACAddress": "BB"},
        {"IPEnabled": True, "IPAddress": ["10.0.0.6"], "MACAddress": "CC"},
    ]
    assert classify.format_network_summary(adapters) == "IP: 10.0.0.5, MAC: BB"


def test_network_summary_accepts_scalar_address():
    adapters = [{"IPEnabled": True, "IPAddress": "10.1.1.1", "MACAddress": "DD"}]
    assert classify.format_network_summary(adapters) == "IP: 10.1.1.1, MAC: DD"


def test_network_summary_without_enabled_adapter():
    assert classify.format_network_summary([{"IPEnabled": False}]) == "N/A"
    assert classify.format_network_summary(None) == "N/A"


def test_bios_summary():
    bios = {"Manufacturer": "Dell Inc. ", "SMBIOSBIOSVersion": "2.19.1"}
    assert classify.format_bios(bios) == "Dell Inc. 2.19.1"
    assert classify.format_bios({}) == "N/A"


def test_service_status_running_instances():
    services = [
        {"Name": "MSSQLSERVER", "State": "Running"},
        {"Name": "MSSQL$REPORTS", "State": "Stopped"},
        {"Name": "MSSQL$APP", "State": "Running"},
    ]
    status = classify.service_status(services)
    assert status == ServiceStatus.running(["MSSQLSERVER", "MSSQL$APP"])
    assert str(status) == "MSSQLSERVER, MSSQL$APP"


def test_service_status_installed_but_stopped():
    status = classify.service_status([{"Name": "MsDtsServer160", "State": "Stopped"}])
    assert status == ServiceStatus.installed_not_running()
    assert str(status) == "InstalledNotRunning"
