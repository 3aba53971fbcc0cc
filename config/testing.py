import os

SECRET_KEY = "test-secret"

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "camp_attendance_test"),
}

DEBUG = False
TESTING = True

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))

LOCAL_CACHE_PATH = os.getenv("LOCAL_CACHE_PATH", "instance/test-cache.sqlite3")

IP_GEOLOCATION_URL = "https://ipapi.co/{ip}/json/"
IP_GEOLOCATION_TIMEOUT = 1.0

SESSION_HOURS = 2

IDENTIFIER_DOMAIN = "nurses-attendance.com"
ADMIN_IDENTIFIER = "admin@nurses-attendance.com"
ADMIN_PASSWORD = ""
