# Simulation Configuration
import os

# Cycle Settings (milliseconds)
DEFAULT_CYCLE_LENGTH = 60_000
SECOND = 1_000
FIXABLE_PRIORITY = 3    # Phases at or above this priority absorb rescaling

# Default Light Phases
DEFAULT_RED_TIME = 30_000
DEFAULT_RED_YELLOW_TIME = 2_000
DEFAULT_GREEN_TIME = 26_000
DEFAULT_YELLOW_TIME = 2_000

# Failure Simulation
DEFAULT_FAILURE_DURATION = 10_000
DEFAULT_FAILURE_PROBABILITY = 0.0

# Time Sync
TIME_SYNC_URL = os.getenv("NOTYETRED_TIME_SYNC_URL", "https://worldtimeapi.org/api/timezone/Etc/UTC")
TIME_SYNC_TIMEOUT = float(os.getenv("NOTYETRED_TIME_SYNC_TIMEOUT", "5.0"))  # seconds
TIME_SYNC_ON_STARTUP = os.getenv("NOTYETRED_TIME_SYNC_ON_STARTUP", "1") == "1"

# Logging
LOG_LEVEL = os.getenv("NOTYETRED_LOG_LEVEL", "INFO")
