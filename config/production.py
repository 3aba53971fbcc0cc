import os

SECRET_KEY = os.getenv("SECRET_KEY", "please-set-SECRET_KEY")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "camp_attendance"),
}

DEBUG = False

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))

LOCAL_CACHE_PATH = os.getenv("LOCAL_CACHE_PATH", "/var/lib/camp-attendance/cache.sqlite3")

IP_GEOLOCATION_URL = os.getenv("IP_GEOLOCATION_URL", "https://ipapi.co/{ip}/json/")
IP_GEOLOCATION_TIMEOUT = float(os.getenv("IP_GEOLOCATION_TIMEOUT", "5"))

SESSION_HOURS = float(os.getenv("SESSION_HOURS", "2"))

IDENTIFIER_DOMAIN = os.getenv("IDENTIFIER_DOMAIN", "nurses-attendance.com")
ADMIN_IDENTIFIER = os.getenv("ADMIN_IDENTIFIER", "admin@nurses-attendance.com")
# Empty leaves the admin account untouched on schema init
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD", "")
