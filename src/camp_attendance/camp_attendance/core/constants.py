"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

SESSION_HOURS = 2
PAGE_SIZE = 20
MAX_CAMP_PHOTOS = 5

PRECISE_LOCATION_TIMEOUT_SECONDS = 10
IP_LOCATION_TIMEOUT_SECONDS = 5

IMAGE_MAX_EDGE = 800
IMAGE_JPEG_QUALITY = 70

LOGIN_MAX_FAILURES = 5
LOGIN_FAILURE_WINDOW_MINUTES = 15

EXPORT_FILENAME_PATTERN = "camp-attendance-{date}.csv"
