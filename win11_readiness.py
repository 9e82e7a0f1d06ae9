import argparse
import logging
import os
import sys
import tempfile
import time

from config import APP_NAME, LOG_FILE_PREFIX
from collect import gather
from readiness_api import RequirementThresholds, assess_windows11_readiness
from report import build_payload, emit, send_data_to_api
from system_info import SystemFacts

logger = logging.getLogger(__name__)


_log_handlers = []


def configure_logging(debug=False):
    """ File log in the temp directory at INFO, console at ERROR (DEBUG with --debug). Only the first call adds handlers. """
    if _log_handlers:
        return
    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    # create file handler which logs even debug messages
    fh = logging.FileHandler(os.path.join(tempfile.gettempdir(), f"{LOG_FILE_PREFIX}__{time.strftime('%Y%m%d_%H%M%S')}.log"))
    fh.setLevel(logging.DEBUG if debug else logging.INFO)
    # create console handler with a higher log level
    ch = logging.StreamHandler(sys.stderr)
    ch.setLevel(logging.DEBUG if debug else logging.ERROR)
    formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    fh.setFormatter(formatter)
    ch.setFormatter(formatter)
    for handler in (fh, ch):
        root.addHandler(handler)
        _log_handlers.append(handler)


def parse_args(argv):
    defaults = RequirementThresholds()
    parser = argparse.ArgumentParser(
        description=f"{APP_NAME} - checks this device against the Windows 11 minimum requirements",
        epilog="Exit codes: 0 = meets requirements, 1 = does not meet requirements, "
               "2 = manual product key entry needed",
    )
    parser.add_argument("--assessment-id", help="Identifier included with submitted results")
    parser.add_argument("--submit", action="store_true", help="POST the results to the assessment API")
    parser.add_argument("--api-url", help="Override the assessment API endpoint")
    parser.add_argument("--min-disk-gb", type=float, default=defaults.min_disk_gb)
    parser.add_argument("--min-memory-gb", type=float, default=defaults.min_memory_gb)
    parser.add_argument("--min-clock-mhz", type=int, default=defaults.min_clock_mhz)
    parser.add_argument("--min-cores", type=int, default=defaults.min_logical_cores)
    parser.add_argument("--min-tpm-version", type=int, default=defaults.min_tpm_version)
    parser.add_argument("--debug", action="store_true", help="Enable debug logging on the console")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(sys.argv[1:] if argv is None else argv)
    configure_logging(debug=args.debug)

    thresholds = RequirementThresholds(
        min_disk_gb=args.min_disk_gb,
        min_memory_gb=args.min_memory_gb,
        min_clock_mhz=args.min_clock_mhz,
        min_logical_cores=args.min_cores,
        min_tpm_version=args.min_tpm_version,
    )

    try:
        facts = gather()
    except Exception as e:
        # gather() handles its own probe failures; keep reporting even if something slipped through
        logger.critical(f"CRITICAL ERROR during data collection: {e}")
        facts = SystemFacts(collection_errors=(str(e),))

    outcome = assess_windows11_readiness(facts, thresholds)
    result = emit(outcome)

    if args.submit:
        payload = build_payload(facts, outcome, result, assessment_id=args.assessment_id)
        success, status_msg = send_data_to_api(payload, url=args.api_url)
        if not success:
            print(f"Results could not be submitted ({status_msg}).", file=sys.stderr)

    return result.exit_code


if __name__ == "__main__":
    sys.exit(main())
