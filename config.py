"""
Configuration settings for the object removal export pipeline
"""
import os

# EXIF settings
# Only this many leading bytes of an asset are inspected for orientation
EXIF_SCAN_BYTES = int(os.getenv('OBJECT_REMOVAL_EXIF_SCAN_BYTES', str(256 * 1024)))

# Brush settings
DEFAULT_BRUSH_SIZE = 22  # screen px
MARK_COLOR = (255, 0, 0, 255)

# Removal provider settings
DEFAULT_PROVIDER = os.getenv('OBJECT_REMOVAL_PROVIDER', 'runware')
REMOVAL_ENDPOINT = os.getenv('OBJECT_REMOVAL_ENDPOINT', '')
REMOVAL_API_KEY = os.getenv('OBJECT_REMOVAL_API_KEY', '')
REQUEST_TIMEOUT = float(os.getenv('OBJECT_REMOVAL_TIMEOUT', '60'))  # seconds
TIMEOUT_RETRIES = int(os.getenv('OBJECT_REMOVAL_TIMEOUT_RETRIES', '1'))
TIMEOUT_BACKOFF = float(os.getenv('OBJECT_REMOVAL_TIMEOUT_BACKOFF', '1.0'))  # seconds

# Logging
# Diagnostics are silent unless explicitly enabled
LOGS_ENABLED = os.getenv('OBJECT_REMOVAL_LOGS', 'false').lower() == 'true'
LOG_LEVEL = os.getenv('OBJECT_REMOVAL_LOG_LEVEL', 'INFO').upper()
LOG_DIR = os.getenv('OBJECT_REMOVAL_LOG_DIR', '')  # empty: console only

# Size constraints per removal provider: sides must be multiples of `step`
# inside [min_side, max_side]
PROVIDER_CONSTRAINTS = {
    "runware": {"min_side": 128, "max_side": 2048, "step": 64},
}


def get_provider_constraints(provider: str = DEFAULT_PROVIDER) -> dict:
    """
    Get size constraints for a removal provider

    Args:
        provider: Provider name (e.g., 'runware')

    Returns:
        Dict with min_side, max_side and step
        Returns None if not found
    """
    if provider not in PROVIDER_CONSTRAINTS:
        return None

    return dict(PROVIDER_CONSTRAINTS[provider])
