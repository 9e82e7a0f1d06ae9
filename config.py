# --- Application ---
APP_NAME = "Windows 11 Readiness Assessment"
LOG_FILE_PREFIX = "win11_readiness"

# --- Result Submission ---
# Only used when the assessment is run with --submit
API_ENDPOINT_URL = "https://readiness.example.com/api/assessments"
API_TIMEOUT_SECONDS = 15

# --- Windows 11 Minimum Requirements ---
MIN_DISK_GB = 64
MIN_MEMORY_GB = 4
MIN_CLOCK_MHZ = 1000
MIN_LOGICAL_CORES = 2
MIN_ADDRESS_WIDTH_BITS = 64
MIN_TPM_VERSION = 2

# Windows 11 still reports major version 10; build 22000 is the first Windows 11 build
TARGET_OS_MAJOR_VERSION = 10
TARGET_OS_MIN_BUILD = 22000

# --- Exit Codes ---
EXIT_SUCCESS = 0
EXIT_FAILURE = 1
EXIT_INDETERMINATE = 2
