import logging
import sys
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

import requests

from config import API_ENDPOINT_URL, API_TIMEOUT_SECONDS, EXIT_FAILURE, EXIT_INDETERMINATE, EXIT_SUCCESS
from readiness_api import EvaluationOutcome
from system_info import SystemFacts

logger = logging.getLogger(__name__)


class ReadinessStatus(Enum):
    """ Terminal state of an assessment run. INDETERMINATE means a technician has to follow up. """
    SUCCESS = "Success"
    FAILURE = "Failure"
    INDETERMINATE = "Indeterminate"

    @property
    def exit_code(self) -> int:
        return {
            ReadinessStatus.SUCCESS: EXIT_SUCCESS,
            ReadinessStatus.FAILURE: EXIT_FAILURE,
            ReadinessStatus.INDETERMINATE: EXIT_INDETERMINATE,
        }[self]


@dataclass
class ProcessResult:
    status: ReadinessStatus
    lines: List[str] = field(default_factory=list)

    @property
    def exit_code(self) -> int:
        return self.status.exit_code


def readiness_status(outcome: EvaluationOutcome) -> ReadinessStatus:
    """ Combines the hardware verdict with the manual key entry flag. The key flag always wins. """
    if outcome.short_circuited:
        return ReadinessStatus.SUCCESS
    if outcome.needs_manual_key_entry:
        return ReadinessStatus.INDETERMINATE
    if outcome.overall_passed:
        return ReadinessStatus.SUCCESS
    return ReadinessStatus.FAILURE


def format_outcome(outcome: EvaluationOutcome) -> List[str]:
    """ One line per failed check, plus the exemption reason or product key advisory. """
    if outcome.short_circuited:
        return [outcome.short_circuit_reason or "Device is exempt from Windows 11 requirements."]

    lines = []
    if outcome.key_advisory:
        lines.append(f"WARNING: {outcome.key_advisory}")
    for check in outcome.failed_checks:
        lines.append(f"FAIL [{check.name}]: {check.message}")
    if outcome.overall_passed:
        lines.append("Device meets the Windows 11 minimum hardware requirements.")
    else:
        lines.append(f"Device does not meet the Windows 11 minimum requirements "
                     f"({len(outcome.failed_checks)} of {len(outcome.checks)} checks failed).")
    return lines


def emit(outcome: EvaluationOutcome, stream=None) -> ProcessResult:
    """ Writes the diagnostics to stdout (or stream) and returns the status to exit with. """
    stream = stream or sys.stdout
    lines = format_outcome(outcome)
    for line in lines:
        print(line, file=stream)
    status = readiness_status(outcome)
    logger.info(f"Assessment finished with status {status.value} (exit code {status.exit_code})")
    return ProcessResult(status=status, lines=lines)


# --- Result Submission ---
def build_payload(facts: SystemFacts, outcome: EvaluationOutcome, result: ProcessResult,
                  assessment_id: Optional[str] = None) -> dict:
    """ Serializable summary of one run for the results API. """
    return {
        "assessment_id": assessment_id or "Not Provided",
        "timestamp_utc": time.strftime("%Y-%m-%d %H:%M:%S", time.gmtime()),
        "facts": facts.to_dict(),
        "status": result.status.value,
        "overall_passed": outcome.overall_passed,
        "short_circuited": outcome.short_circuited,
        "needs_manual_key_entry": outcome.needs_manual_key_entry,
        "failed_checks": [{"name": c.name, "message": c.message} for c in outcome.failed_checks],
        "diagnostics": result.lines,
    }


def send_data_to_api(payload: dict, url: Optional[str] = None):
    """ Sends an assessment payload to the API endpoint. Returns (success, message). """
    url = url or API_ENDPOINT_URL
    headers = {'Content-Type': 'application/json'}
    try:
        response = requests.post(url, headers=headers, json=payload, timeout=API_TIMEOUT_SECONDS)
        response.raise_for_status()
        logger.info(f"Assessment data sent to {url}")
        return True, "Success"
    except requests.exceptions.Timeout:
        logger.error(f"Sending assessment data to {url} timed out.")
        return False, "Connection timed out."
    except requests.exceptions.RequestException as e:
        logger.error(f"Error sending assessment data to {url}: {e}")
        return False, f"Could not connect to server: {e}"
