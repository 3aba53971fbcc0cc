import os

SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "camp_attendance"),
}

DEBUG = True

# If enabled, app will apply schema.sql on startup (idempotent: CREATE IF NOT EXISTS)
AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "1")))

# Local copy of attendance records; pending writes wait here for /resync
LOCAL_CACHE_PATH = os.getenv("LOCAL_CACHE_PATH", "instance/attendance-cache.sqlite3")

IP_GEOLOCATION_URL = os.getenv("IP_GEOLOCATION_URL", "https://ipapi.co/{ip}/json/")
IP_GEOLOCATION_TIMEOUT = float(os.getenv("IP_GEOLOCATION_TIMEOUT", "5"))

SESSION_HOURS = float(os.getenv("SESSION_HOURS", "2"))

IDENTIFIER_DOMAIN = os.getenv("IDENTIFIER_DOMAIN", "nurses-attendance.com")
ADMIN_IDENTIFIER = os.getenv("ADMIN_IDENTIFIER", "admin@nurses-attendance.com")
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD", "admin123")
