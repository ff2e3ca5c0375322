from __future__ import annotations

import logging
import platform
import subprocess
from pathlib import Path
from shutil import which
from typing import List, Optional, Tuple

from .config import Settings, load_settings
from .context import PropertyRepository
from .errors import SmartctlExecutionError
from .text_parser import SmartctlTextAtaParser

logger = logging.getLogger(__name__)

# Exit status bits: 0 command line did not parse, 1 device open failed.
# The higher bits describe the disk, not the run, and still come with output.
SMARTCTL_FATAL_BITS = 0x03

_WINDOWS_CANDIDATES = [
    r"C:\Program Files\smartmontools\bin\smartctl.exe",
    r"C:\Program Files\smartmontools\smartctl.exe",
    r"C:\Program Files (x86)\smartmontools\bin\smartctl.exe",
    r"C:\Program Files (x86)\smartmontools\smartctl.exe",
]

_SMARTCTL_PATH: Optional[str] = None


def has_smartctl(settings: Optional[Settings] = None) -> bool:
    return find_smartctl(settings) is not None


def find_smartctl(settings: Optional[Settings] = None) -> Optional[str]:
    global _SMARTCTL_PATH
    settings = settings or load_settings()
    if settings.smartctl_path:
        return settings.smartctl_path if Path(settings.smartctl_path).is_file() else None
    if _SMARTCTL_PATH:
        return _SMARTCTL_PATH

    path = which("smartctl")
    if path:
        _SMARTCTL_PATH = path
        return path
    if platform.system() == "Windows":
        for c in _WINDOWS_CANDIDATES:
            if Path(c).is_file():
                _SMARTCTL_PATH = c
                return c
    return None


def _run(cmd: List[str], timeout_sec: int) -> subprocess.CompletedProcess:
    logger.debug("Running %s", " ".join(cmd))
    try:
        return subprocess.run(cmd, capture_output=True, text=True, timeout=timeout_sec)
    except subprocess.TimeoutExpired as exc:
        raise SmartctlExecutionError(f"smartctl timed out after {timeout_sec} s") from exc
    except OSError as exc:
        raise SmartctlExecutionError(f"Cannot execute smartctl: {exc}") from exc


def scan_devices(settings: Optional[Settings] = None) -> List[Tuple[str, str]]:
    """Return (device, type) pairs reported by ``smartctl --scan-open``."""
    settings = settings or load_settings()
    exe = find_smartctl(settings)
    if not exe:
        return []
    proc = _run([exe, "--scan-open"], settings.timeout_sec)
    if not proc.stdout.strip():
        return []
    result: List[Tuple[str, str]] = []
    # "/dev/sda -d sat # /dev/sda [SAT], ATA device"
    for line in proc.stdout.splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        parts = line.split()
        if len(parts) >= 3 and parts[1] == "-d":
            result.append((parts[0], parts[2]))
    return result


def run_smartctl_text(device: str, dev_type: Optional[str] = None,
                      settings: Optional[Settings] = None) -> str:
    """Run smartctl on one device and return its text output."""
    settings = settings or load_settings()
    exe = find_smartctl(settings)
    if not exe:
        raise SmartctlExecutionError("smartctl not found in PATH")
    cmd = [exe, *settings.smartctl_args]
    if dev_type:
        cmd.extend(["-d", dev_type])
    cmd.append(device)

    proc = _run(cmd, settings.timeout_sec)
    if proc.returncode & SMARTCTL_FATAL_BITS and not proc.stdout.strip():
        raise SmartctlExecutionError(proc.stderr.strip() or f"smartctl failed for {device}")
    if proc.returncode:
        logger.info("smartctl exited with status %#x for %s", proc.returncode, device)
    return proc.stdout


def get_smart_properties(device: str, dev_type: Optional[str] = None,
                         settings: Optional[Settings] = None) -> PropertyRepository:
    output = run_smartctl_text(device, dev_type, settings)
    return SmartctlTextAtaParser().parse(output)
