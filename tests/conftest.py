"""Shared fixtures for the readiness assessment tests."""
from __future__ import annotations

import sys
from pathlib import Path

import pytest

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from system_info import OSArchitecture, SecureBootState, SystemFacts  # noqa: E402


@pytest.fixture
def compliant_facts() -> SystemFacts:
    """A Windows 10 22H2 workstation that meets every requirement and has an OEM key."""
    return SystemFacts(
        os_disk_bytes=100_000_000_000,
        total_memory_bytes=8_000_000_000,
        cpu_max_clock_mhz=2400,
        cpu_logical_cores=4,
        os_architecture=OSArchitecture.X64,
        is_server_edition=False,
        os_major_version=10,
        os_build_number=19045,
        tpm_present=True,
        tpm_spec_version_major=2,
        secure_boot=SecureBootState.ENABLED,
        burned_in_product_key="ABC-123",
        hostname="WS-01",
    )


@pytest.fixture
def failing_facts() -> SystemFacts:
    """A device that fails every hardware check."""
    return SystemFacts(
        os_disk_bytes=32_000_000_000,
        total_memory_bytes=2_000_000_000,
        cpu_max_clock_mhz=800,
        cpu_logical_cores=1,
        os_architecture=OSArchitecture.X86,
        is_server_edition=False,
        os_major_version=10,
        os_build_number=19045,
        tpm_present=False,
        secure_boot=SecureBootState.PLATFORM_UNSUPPORTED,
        burned_in_product_key=None,
    )
