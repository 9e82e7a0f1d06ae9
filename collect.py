import logging
import os
import platform
import socket

import psutil

from system_info import OSArchitecture, SecureBootState, SystemFacts

logger = logging.getLogger(__name__)

# --- Attempt Imports ---
# WMI
try:
    import wmi
    _wmi_available = True
except ImportError:
    _wmi_available = False
# WinReg
try:
    import winreg
    _winreg_available = True
except ImportError:
    _winreg_available = False

SECURE_BOOT_KEY = r"SYSTEM\CurrentControlSet\Control\SecureBoot\State"
SOFTWARE_PROTECTION_KEY = r"SOFTWARE\Microsoft\Windows NT\CurrentVersion\SoftwareProtectionPlatform"
TPM_NAMESPACE = "root/cimv2/security/microsofttpm"

# Win32_OperatingSystem.ProductType: 1 = Workstation, 2 = Domain Controller, 3 = Server
PRODUCT_TYPE_WORKSTATION = 1


# --- Parsing Helpers ---
def parse_os_version(version):
    """ '10.0.19045' -> (10, 19045). Returns (None, None) when the string can't be parsed. """
    if not version:
        return None, None
    parts = str(version).strip().split(".")
    try:
        major = int(parts[0])
        build = int(parts[2]) if len(parts) > 2 else None
    except ValueError:
        return None, None
    return major, build


def parse_tpm_spec_version(spec_version):
    """ Win32_Tpm.SpecVersion looks like '2.0, 0, 1.38'; the first entry is the TPM version. """
    if not spec_version:
        return None
    first = str(spec_version).split(",")[0].strip()
    try:
        return int(first.split(".")[0])
    except ValueError:
        logger.warning(f"Could not parse TPM spec version: {spec_version}")
        return None


def _system_drive_root():
    if platform.system() == "Windows":
        return os.getenv("SystemDrive", "C:") + "\\"
    return os.path.abspath(os.sep)


def _probe(errors, label, func, *args):
    """ Runs one probe. A failing probe is logged and recorded, and yields None. """
    try:
        return func(*args)
    except Exception as e:
        err = f"{label} Failed: {type(e).__name__}: {e}"
        logger.error(err)
        errors.append(err)
        return None


# --- Registry ---
def _read_registry_value(key_path, value_name):
    with winreg.OpenKey(winreg.HKEY_LOCAL_MACHINE, key_path, 0, winreg.KEY_READ) as reg_key:
        value, _ = winreg.QueryValueEx(reg_key, value_name)
    return value


def get_secure_boot_state() -> SecureBootState:
    """ Reads UEFISecureBootEnabled. A missing key means the firmware has no Secure Boot (legacy BIOS). """
    if not _winreg_available:
        return SecureBootState.PLATFORM_UNSUPPORTED
    try:
        value = _read_registry_value(SECURE_BOOT_KEY, "UEFISecureBootEnabled")
    except FileNotFoundError:
        return SecureBootState.PLATFORM_UNSUPPORTED
    except PermissionError:
        logger.error("Secure Boot Registry Check Failed: access denied")
        return SecureBootState.ACCESS_DENIED
    except Exception as e:
        logger.error(f"Secure Boot Registry Check Failed: {type(e).__name__}: {e}")
        return SecureBootState.UNKNOWN_ERROR
    return SecureBootState.ENABLED if value == 1 else SecureBootState.DISABLED


def get_backup_product_key():
    """ Returns the BackupProductKeyDefault registry value, or None when there isn't one. """
    if not _winreg_available:
        return None
    try:
        value = _read_registry_value(SOFTWARE_PROTECTION_KEY, "BackupProductKeyDefault")
    except FileNotFoundError:
        return None
    except Exception as e:
        logger.error(f"Backup Product Key Registry Check Failed: {type(e).__name__}: {e}")
        return None
    return str(value).strip() or None


# --- WMI ---
def check_wmi_service() -> (bool, str):
    """ Checks if the WMI service ('Winmgmt') is running. """
    try:
        service = psutil.win_service_get('Winmgmt')
        status = service.status()
        if status == 'running':
            return True, "Running"
        else:
            return False, f"Service status: {status}"
    except psutil.NoSuchProcess:
        return False, "Service not found (NoSuchProcess)"
    except Exception as e:
        return False, f"Error checking service: {e}"


def get_burned_in_product_key(c):
    """ OEM key embedded in the firmware (OA3), None when the device doesn't have one. """
    service = c.SoftwareLicensingService()[0]
    return (service.OA3xOriginalProductKey or "").strip() or None


def get_installed_memory_bytes(c):
    total = sum(int(mem.Capacity) for mem in c.Win32_PhysicalMemory() if mem.Capacity)
    return total or None


def get_max_clock_mhz(c):
    speeds = [int(cpu.MaxClockSpeed) for cpu in c.Win32_Processor() if cpu.MaxClockSpeed]
    return max(speeds) if speeds else None


def get_os_identity(c):
    """ Returns (architecture, is_server, major, build) from Win32_OperatingSystem. """
    os_info = c.Win32_OperatingSystem()[0]
    major, build = parse_os_version(os_info.Version)
    if build is None and os_info.BuildNumber:
        build = int(os_info.BuildNumber)
    is_server = int(os_info.ProductType) != PRODUCT_TYPE_WORKSTATION if os_info.ProductType is not None else None
    return OSArchitecture.from_string(os_info.OSArchitecture), is_server, major, build


def get_tpm_info(c_tpm):
    """ Returns (present, spec_version_major). (None, None) when no TPM instance exists. """
    tpm_info_list = c_tpm.Win32_Tpm()
    if not tpm_info_list:
        return None, None
    tpm_info = tpm_info_list[0]
    # WMI methods return a tuple of out parameters
    enabled = tpm_info.IsEnabled()[0]
    return bool(enabled), parse_tpm_spec_version(tpm_info.SpecVersion)


# --- Fallbacks ---
def get_clock_mhz_fallback():
    cpu_freq = psutil.cpu_freq()
    if cpu_freq is None:
        return None
    # Use max freq if available, otherwise current freq
    max_freq = cpu_freq.max if cpu_freq.max > 0 else cpu_freq.current
    return int(max_freq) if max_freq > 0 else None


def get_os_identity_fallback():
    major, build = parse_os_version(platform.version())
    edition = platform.win32_edition() if hasattr(platform, "win32_edition") else None
    is_server = "server" in edition.lower() if edition else None
    return OSArchitecture.from_string(platform.machine()), is_server, major, build


# --- Data Collection ---
def _collect_wmi_facts(values, errors):
    if not _wmi_available:
        logger.info("WMI module not found. Skipping WMI checks.")
        return
    wmi_service_ok, wmi_service_status = check_wmi_service()
    if not wmi_service_ok:
        err = f"WMI Service ('Winmgmt') not running or inaccessible. Status: {wmi_service_status}"
        logger.error(err)
        errors.append(err)
        return

    c = _probe(errors, "WMI Init", wmi.WMI)
    if c is None:
        return

    identity = _probe(errors, "Operating System Query", get_os_identity, c)
    if identity:
        arch, is_server, major, build = identity
        values.update(os_architecture=arch, is_server_edition=is_server,
                      os_major_version=major, os_build_number=build)
    values["total_memory_bytes"] = _probe(errors, "Physical Memory Query", get_installed_memory_bytes, c)
    values["cpu_max_clock_mhz"] = _probe(errors, "Processor Query", get_max_clock_mhz, c)
    values["burned_in_product_key"] = _probe(errors, "Licensing Query", get_burned_in_product_key, c)

    # This namespace might require admin rights
    c_tpm = _probe(errors, "WMI TPM Namespace Connect", lambda: wmi.WMI(namespace=TPM_NAMESPACE))
    if c_tpm is not None:
        tpm = _probe(errors, "TPM Query", get_tpm_info, c_tpm)
        if tpm:
            values["tpm_present"], values["tpm_spec_version_major"] = tpm


def _fill_fallbacks(values, errors):
    """ Fills facts WMI couldn't provide from psutil / platform. """
    if values.get("total_memory_bytes") is None:
        values["total_memory_bytes"] = _probe(errors, "RAM Query", lambda: psutil.virtual_memory().total)
    if values.get("cpu_max_clock_mhz") is None:
        values["cpu_max_clock_mhz"] = _probe(errors, "CPU Frequency Query", get_clock_mhz_fallback)
    if values.get("os_major_version") is None or values.get("os_architecture") is None:
        identity = _probe(errors, "Platform Query", get_os_identity_fallback)
        if identity:
            arch, is_server, major, build = identity
            for key, value in (("os_architecture", arch), ("is_server_edition", is_server),
                               ("os_major_version", major), ("os_build_number", build)):
                if values.get(key) is None:
                    values[key] = value


def gather() -> SystemFacts:
    """ Collects every fact the readiness assessment needs. Never raises; failed probes leave the fact as None. """
    values = {}
    errors = []

    values["hostname"] = _probe(errors, "Hostname Query", socket.gethostname)
    values["os_disk_bytes"] = _probe(errors, "Disk Query", lambda: psutil.disk_usage(_system_drive_root()).total)
    values["cpu_logical_cores"] = _probe(errors, "CPU Core Query", lambda: psutil.cpu_count(logical=True))

    _collect_wmi_facts(values, errors)
    _fill_fallbacks(values, errors)

    values["secure_boot"] = get_secure_boot_state()
    if not values.get("burned_in_product_key"):
        values["backup_product_key"] = get_backup_product_key()
    values["collection_errors"] = tuple(errors)

    logger.info(f"Data collection complete ({len(errors)} probe errors).")
    return SystemFacts(**values)
