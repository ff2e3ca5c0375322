from __future__ import annotations

import subprocess

import pytest

from smartparse import smartctl
from smartparse.config import Settings, load_settings
from smartparse.errors import SmartctlExecutionError


@pytest.fixture
def settings(tmp_path):
    exe = tmp_path / "smartctl"
    exe.write_text("")
    return Settings(smartctl_path=str(exe), smartctl_args=["-x"], timeout_sec=5, log_level="DEBUG")


def fake_run(monkeypatch, stdout="", stderr="", returncode=0):
    calls = []

    def run(cmd, **kwargs):
        calls.append((cmd, kwargs))
        return subprocess.CompletedProcess(cmd, returncode, stdout=stdout, stderr=stderr)

    monkeypatch.setattr(smartctl.subprocess, "run", run)
    return calls


def test_load_settings(monkeypatch):
    monkeypatch.setenv("SMARTPARSE_SMARTCTL", "/opt/smartctl")
    monkeypatch.setenv("SMARTPARSE_SMARTCTL_ARGS", "-x -T permissive")
    monkeypatch.setenv("SMARTPARSE_TIMEOUT_SEC", "30")
    monkeypatch.setenv("SMARTPARSE_LOG_LEVEL", "debug")
    s = load_settings()
    assert s.smartctl_path == "/opt/smartctl"
    assert s.smartctl_args == ["-x", "-T", "permissive"]
    assert s.timeout_sec == 30
    assert s.log_level == "DEBUG"


def test_load_settings_defaults(monkeypatch):
    for name in ("SMARTPARSE_SMARTCTL", "SMARTPARSE_SMARTCTL_ARGS", "SMARTPARSE_TIMEOUT_SEC", "SMARTPARSE_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    s = load_settings()
    assert s.smartctl_path is None
    assert s.smartctl_args == ["-x"]
    assert s.timeout_sec == 60
    assert s.log_level == "WARNING"


def test_find_smartctl_override(settings, tmp_path):
    assert smartctl.find_smartctl(settings) == settings.smartctl_path
    missing = Settings(str(tmp_path / "nope"), ["-x"], 5, "WARNING")
    assert smartctl.find_smartctl(missing) is None
    assert smartctl.has_smartctl(missing) is False


def test_scan_devices(settings, monkeypatch):
    calls = fake_run(
        monkeypatch,
        stdout=(
            "/dev/sda -d sat # /dev/sda [SAT], ATA device\n"
            "# /dev/sdb -d scsi # /dev/sdb, SCSI device, open failed\n"
            "\n"
            "/dev/nvme0 -d nvme # /dev/nvme0, NVMe device\n"
        ),
    )
    assert smartctl.scan_devices(settings) == [("/dev/sda", "sat"), ("/dev/nvme0", "nvme")]
    assert calls[0][0] == [settings.smartctl_path, "--scan-open"]
    assert calls[0][1]["timeout"] == 5


def test_run_smartctl_text_command_line(settings, monkeypatch):
    calls = fake_run(monkeypatch, stdout="smartctl 7.2 ...")
    assert smartctl.run_smartctl_text("/dev/sda", "sat", settings) == "smartctl 7.2 ..."
    assert calls[0][0] == [settings.smartctl_path, "-x", "-d", "sat", "/dev/sda"]


def test_disk_status_bits_keep_output(settings, monkeypatch):
    # bit 3: disk failing
    fake_run(monkeypatch, stdout="smartctl 7.2 ...", returncode=0x08)
    assert smartctl.run_smartctl_text("/dev/sda", settings=settings) == "smartctl 7.2 ..."


def test_open_failure_without_output(settings, monkeypatch):
    fake_run(monkeypatch, stderr="Smartctl open device: /dev/sdz failed: No such device", returncode=0x02)
    with pytest.raises(SmartctlExecutionError, match="No such device"):
        smartctl.run_smartctl_text("/dev/sdz", settings=settings)


def test_timeout(settings, monkeypatch):
    def run(cmd, **kwargs):
        raise subprocess.TimeoutExpired(cmd, kwargs["timeout"])

    monkeypatch.setattr(smartctl.subprocess, "run", run)
    with pytest.raises(SmartctlExecutionError, match="timed out"):
        smartctl.run_smartctl_text("/dev/sda", settings=settings)


def test_get_smart_properties(settings, monkeypatch, x_output):
    fake_run(monkeypatch, stdout=x_output, returncode=0x40)
    props = smartctl.get_smart_properties("/dev/sda", "sat", settings)
    assert props.find("model_name").value == "ST3500630AS"
