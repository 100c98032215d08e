"""Default values for settings.

All default values used in the AgentSettings model.
"""

from typing import Final

from kubecapture.constants.timeouts import RESYNC_INTERVAL, STOP_GRACE_PERIOD

# ============================================================================
# Capture defaults
# ============================================================================

ROTATION_SIZE_UNITS_DEFAULT: Final = 1
STOP_GRACE_SECONDS_DEFAULT: Final = STOP_GRACE_PERIOD
KILL_AFTER_GRACE_DEFAULT: Final = False
RESPAWN_ON_UNEXPECTED_EXIT_DEFAULT: Final = False

# ============================================================================
# Watch defaults
# ============================================================================

RESYNC_INTERVAL_SECONDS_DEFAULT: Final = RESYNC_INTERVAL

# ============================================================================
# Logging defaults
# ============================================================================

LOG_LEVEL_DEFAULT: Final = "INFO"
LOG_FORMAT_DEFAULT: Final = "%(asctime)s %(levelname)s %(name)s: %(message)s"

__all__ = [
    "KILL_AFTER_GRACE_DEFAULT",
    "LOG_FORMAT_DEFAULT",
    "LOG_LEVEL_DEFAULT",
    "RESPAWN_ON_UNEXPECTED_EXIT_DEFAULT",
    "RESYNC_INTERVAL_SECONDS_DEFAULT",
    "ROTATION_SIZE_UNITS_DEFAULT",
    "STOP_GRACE_SECONDS_DEFAULT",
]
