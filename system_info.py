from dataclasses import dataclass, fields
from enum import Enum
from typing import Optional, Tuple


# --- Enums ---
class OSArchitecture(Enum):
    """ Address width of the installed operating system. """
    X86 = 32
    X64 = 64
    OTHER = 0

    @property
    def bits(self) -> int:
        return self.value

    @classmethod
    def from_string(cls, value):
        """ Maps '64-bit', 'AMD64', 'x86', '32-bit' style strings to an OSArchitecture. """
        if not value:
            return None
        text = str(value).strip().lower()
        if "64" in text:
            return cls.X64
        if "32" in text or text in ("x86", "i386", "i686"):
            return cls.X86
        return cls.OTHER


class SecureBootState(Enum):
    """ Outcome of querying the firmware Secure Boot state. """
    ENABLED = "Enabled"
    DISABLED = "Disabled"
    PLATFORM_UNSUPPORTED = "PlatformUnsupported"
    ACCESS_DENIED = "AccessDenied"
    UNKNOWN_ERROR = "UnknownError"


# --- Data Class ---
@dataclass(frozen=True)
class SystemFacts:
    """ Snapshot of the facts gathered from the host. None means the value could not be determined. """

    # Storage / Memory
    os_disk_bytes: Optional[int] = None
    total_memory_bytes: Optional[int] = None

    # CPU Info
    cpu_max_clock_mhz: Optional[int] = None
    cpu_logical_cores: Optional[int] = None

    # OS Identity
    os_architecture: Optional[OSArchitecture] = None
    is_server_edition: Optional[bool] = None
    os_major_version: Optional[int] = None
    os_build_number: Optional[int] = None

    # TPM: None = no TPM subsystem found, False = subsystem reports TPM not present
    tpm_present: Optional[bool] = None
    tpm_spec_version_major: Optional[int] = None

    # Firmware
    secure_boot: Optional[SecureBootState] = None

    # Licensing
    burned_in_product_key: Optional[str] = None
    backup_product_key: Optional[str] = None

    # Status/Error fields
    hostname: Optional[str] = None
    collection_errors: Tuple[str, ...] = ()

    def to_dict(self, include_keys=False):
        """ Convert the facts to a dictionary for serialization. Product keys are left out unless asked for. """
        d = {}
        for f in fields(self):
            if not include_keys and f.name.endswith("_product_key"):
                d[f"{f.name}_found"] = bool(getattr(self, f.name))
                continue
            v = getattr(self, f.name)
            if isinstance(v, Enum):
                d[f.name] = v.name
            elif isinstance(v, tuple):
                d[f.name] = list(v)
            else:
                d[f.name] = v
        return d
