import logging
import math
from dataclasses import dataclass, field
from typing import List, Optional

from config import (
    MIN_ADDRESS_WIDTH_BITS,
    MIN_CLOCK_MHZ,
    MIN_DISK_GB,
    MIN_LOGICAL_CORES,
    MIN_MEMORY_GB,
    MIN_TPM_VERSION,
    TARGET_OS_MAJOR_VERSION,
    TARGET_OS_MIN_BUILD,
)
from system_info import OSArchitecture, SecureBootState, SystemFacts

logger = logging.getLogger(__name__)

# Check names, in evaluation order
DISK_SIZE = "Disk Size"
MEMORY = "Memory"
CLOCK_SPEED = "Clock Speed"
LOGICAL_CORES = "Logical Cores"
ARCHITECTURE = "Architecture"
TPM_PRESENCE = "TPM Presence"
TPM_VERSION = "TPM Version"
SECURE_BOOT = "Secure Boot"


@dataclass(frozen=True)
class RequirementThresholds:
    """ Minimum hardware/firmware values a device needs for Windows 11. """
    min_disk_gb: float = MIN_DISK_GB
    min_memory_gb: float = MIN_MEMORY_GB
    min_clock_mhz: int = MIN_CLOCK_MHZ
    min_logical_cores: int = MIN_LOGICAL_CORES
    min_address_width_bits: int = MIN_ADDRESS_WIDTH_BITS
    min_tpm_version: int = MIN_TPM_VERSION


@dataclass(frozen=True)
class CheckResult:
    name: str
    passed: bool
    message: str = ""

    @classmethod
    def ok(cls, name):
        return cls(name, True, "")

    @classmethod
    def fail(cls, name, message):
        return cls(name, False, message)


@dataclass
class EvaluationOutcome:
    """ Result of evaluating one device.

    needs_manual_key_entry is tracked separately from the hardware checks and
    never changes overall_passed; the two are only combined when reporting.
    """
    short_circuited: bool = False
    short_circuit_reason: Optional[str] = None
    checks: List[CheckResult] = field(default_factory=list)
    needs_manual_key_entry: bool = False
    key_advisory: Optional[str] = None

    @property
    def failed_checks(self) -> List[CheckResult]:
        return [c for c in self.checks if not c.passed]

    @property
    def overall_passed(self) -> bool:
        return self.short_circuited or not self.failed_checks


def _gb(value_bytes):
    # Truncate rather than round so 63.999 GB never prints as 64.00 GB
    return math.floor(value_bytes / 1e7) / 100


# --- Exemptions ---
def check_exemption(facts: SystemFacts) -> Optional[str]:
    """ Returns the reason the device is exempt from assessment, or None. Server editions are checked first. """
    if facts.is_server_edition:
        return "Server edition of Windows detected; Windows 11 requirements do not apply."
    if facts.os_major_version == TARGET_OS_MAJOR_VERSION and \
            facts.os_build_number is not None and facts.os_build_number >= TARGET_OS_MIN_BUILD:
        return f"Device is already running Windows 11 (build {facts.os_build_number})."
    return None


# --- Product Key ---
def product_key_advisory(facts: SystemFacts) -> Optional[str]:
    """ Returns the manual key entry advisory when no key is burned into the firmware, otherwise None. """
    if facts.burned_in_product_key:
        return None
    if facts.backup_product_key:
        return (f"No product key found in firmware. Backup product key found: {facts.backup_product_key} "
                "(record it for manual entry during the upgrade).")
    return ("No product key found in firmware and no backup product key found. "
            "Contact Microsoft or purchase a new Windows license before upgrading.")


# --- Hardware / Firmware Checks ---
def check_disk_size(facts, thresholds):
    if facts.os_disk_bytes is None:
        return CheckResult.fail(DISK_SIZE, f"OS disk size unavailable; cannot verify the {thresholds.min_disk_gb:g} GB minimum.")
    if facts.os_disk_bytes / 1e9 < thresholds.min_disk_gb:
        return CheckResult.fail(DISK_SIZE, f"OS disk size {_gb(facts.os_disk_bytes):.2f} GB < {thresholds.min_disk_gb:g} GB")
    return CheckResult.ok(DISK_SIZE)


def check_memory(facts, thresholds):
    if facts.total_memory_bytes is None:
        return CheckResult.fail(MEMORY, f"Installed memory unavailable; cannot verify the {thresholds.min_memory_gb:g} GB minimum.")
    if facts.total_memory_bytes / 1e9 < thresholds.min_memory_gb:
        return CheckResult.fail(MEMORY, f"Memory {_gb(facts.total_memory_bytes):.2f} GB < {thresholds.min_memory_gb:g} GB")
    return CheckResult.ok(MEMORY)


def check_clock_speed(facts, thresholds):
    if facts.cpu_max_clock_mhz is None:
        return CheckResult.fail(CLOCK_SPEED, f"Processor clock speed unavailable; cannot verify the {thresholds.min_clock_mhz} MHz minimum.")
    if facts.cpu_max_clock_mhz < thresholds.min_clock_mhz:
        return CheckResult.fail(CLOCK_SPEED, f"Processor clock speed {facts.cpu_max_clock_mhz} MHz < {thresholds.min_clock_mhz} MHz")
    return CheckResult.ok(CLOCK_SPEED)


def check_logical_cores(facts, thresholds):
    if facts.cpu_logical_cores is None:
        return CheckResult.fail(LOGICAL_CORES, f"Logical core count unavailable; cannot verify the minimum of {thresholds.min_logical_cores}.")
    if facts.cpu_logical_cores < thresholds.min_logical_cores:
        return CheckResult.fail(LOGICAL_CORES, f"Logical cores {facts.cpu_logical_cores} < {thresholds.min_logical_cores}")
    return CheckResult.ok(LOGICAL_CORES)


def check_architecture(facts, thresholds):
    arch = facts.os_architecture
    if arch is None:
        return CheckResult.fail(ARCHITECTURE, f"OS architecture unavailable; cannot verify {thresholds.min_address_width_bits}-bit requirement.")
    if arch is OSArchitecture.OTHER or arch.bits < thresholds.min_address_width_bits:
        measured = "unrecognized" if arch is OSArchitecture.OTHER else f"{arch.bits}-bit"
        return CheckResult.fail(ARCHITECTURE, f"OS architecture is {measured}; {thresholds.min_address_width_bits}-bit required")
    return CheckResult.ok(ARCHITECTURE)


def check_tpm_presence(facts, thresholds):
    if facts.tpm_present is None:
        return CheckResult.fail(TPM_PRESENCE, f"No TPM subsystem found (or the TPM query failed; see collection errors); TPM {thresholds.min_tpm_version}.0 required")
    if not facts.tpm_present:
        return CheckResult.fail(TPM_PRESENCE, f"TPM is not present; TPM {thresholds.min_tpm_version}.0 required")
    return CheckResult.ok(TPM_PRESENCE)


def check_tpm_version(facts, thresholds):
    version = facts.tpm_spec_version_major
    if version is None:
        return CheckResult.fail(TPM_VERSION, f"TPM version could not be read; TPM {thresholds.min_tpm_version}.0 required")
    # Should be unreachable; the gatherer only ever stores an int here
    if isinstance(version, bool) or not isinstance(version, int):
        logger.warning(f"Unexpected TPM version value {version!r} ({type(version).__name__})")
        return CheckResult.fail(TPM_VERSION, f"TPM version has an unexpected format ({version!r}); TPM {thresholds.min_tpm_version}.0 required")
    if version < thresholds.min_tpm_version:
        return CheckResult.fail(TPM_VERSION, f"TPM version {version} < {thresholds.min_tpm_version}")
    return CheckResult.ok(TPM_VERSION)


_SECURE_BOOT_MESSAGES = {
    SecureBootState.DISABLED: "Secure Boot is supported but disabled; Secure Boot must be enabled",
    SecureBootState.PLATFORM_UNSUPPORTED: "Secure Boot is not supported on this platform (legacy BIOS?); Secure Boot capable UEFI firmware required",
    SecureBootState.ACCESS_DENIED: "Access denied while querying Secure Boot state; re-run with administrative rights",
    SecureBootState.UNKNOWN_ERROR: "Unknown error while querying Secure Boot state; Secure Boot must be enabled",
}


def check_secure_boot(facts, thresholds):
    state = facts.secure_boot
    if state is SecureBootState.ENABLED:
        return CheckResult.ok(SECURE_BOOT)
    if state is None:
        return CheckResult.fail(SECURE_BOOT, "Secure Boot state unavailable; Secure Boot must be enabled")
    message = _SECURE_BOOT_MESSAGES.get(state)
    if message is None:
        logger.warning(f"Unexpected Secure Boot state {state!r}")
        message = f"Unknown error while querying Secure Boot state (unexpected result {state!r}); Secure Boot must be enabled"
    return CheckResult.fail(SECURE_BOOT, message)


def run_hardware_checks(facts: SystemFacts, thresholds: RequirementThresholds) -> List[CheckResult]:
    """ Runs every hardware/firmware check. All checks run so every failure is reported together. """
    checks = [
        check_disk_size(facts, thresholds),
        check_memory(facts, thresholds),
        check_clock_speed(facts, thresholds),
        check_logical_cores(facts, thresholds),
        check_architecture(facts, thresholds),
        check_tpm_presence(facts, thresholds),
    ]
    # Version can only be read from a TPM that is there
    if facts.tpm_present:
        checks.append(check_tpm_version(facts, thresholds))
    checks.append(check_secure_boot(facts, thresholds))
    return checks


def assess_windows11_readiness(facts: SystemFacts, thresholds: Optional[RequirementThresholds] = None) -> EvaluationOutcome:
    """
    Determines whether a device meets the Windows 11 minimum requirements.

    Args:
        facts (SystemFacts): Facts gathered from the device.
        thresholds (RequirementThresholds): Minimum values; defaults come from config.

    Returns:
        EvaluationOutcome: Per-check results, the manual key entry flag and the overall verdict.
    """
    thresholds = thresholds or RequirementThresholds()

    exemption = check_exemption(facts)
    if exemption:
        logger.info(f"Assessment short-circuited: {exemption}")
        return EvaluationOutcome(short_circuited=True, short_circuit_reason=exemption)

    outcome = EvaluationOutcome()

    advisory = product_key_advisory(facts)
    if advisory:
        outcome.needs_manual_key_entry = True
        outcome.key_advisory = advisory
        logger.warning("Manual product key entry required.")

    outcome.checks = run_hardware_checks(facts, thresholds)
    for check in outcome.failed_checks:
        logger.info(f"{check.name} check failed: {check.message}")

    return outcome


class EligibilityEvaluator:
    """ Holds a set of thresholds and evaluates facts against them. """

    def __init__(self, thresholds: Optional[RequirementThresholds] = None):
        self.thresholds = thresholds or RequirementThresholds()

    def evaluate(self, facts: SystemFacts) -> EvaluationOutcome:
        return assess_windows11_readiness(facts, self.thresholds)


if __name__ == "__main__":
    sample_facts = SystemFacts(
        os_disk_bytes=498_918_000_000,
        total_memory_bytes=33_446_000_000,
        cpu_max_clock_mhz=4700,
        cpu_logical_cores=12,
        os_architecture=OSArchitecture.X64,
        is_server_edition=False,
        os_major_version=10,
        os_build_number=19045,
        tpm_present=True,
        tpm_spec_version_major=2,
        secure_boot=SecureBootState.DISABLED,
        burned_in_product_key=None,
        backup_product_key="XXXXX-XXXXX-XXXXX-XXXXX-XXXXX",
        hostname="HQ-Office-01",
    )
    result = assess_windows11_readiness(sample_facts)
    print(f"Overall passed: {result.overall_passed}")
    print(f"Manual key entry: {result.needs_manual_key_entry}")
    if result.key_advisory:
        print(result.key_advisory)
    for check in result.failed_checks:
        print(f"{check.name}: {check.message}")
