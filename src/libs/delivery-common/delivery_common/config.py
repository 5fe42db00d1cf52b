# src/libs/delivery-common/delivery_common/config.py
import os
from dotenv import load_dotenv

# Load environment variables from a .env file for local development.
load_dotenv()


# Database Configurations
POSTGRES_USER = os.getenv("POSTGRES_USER", "user")
POSTGRES_PASSWORD = os.getenv("POSTGRES_PASSWORD", "password")
POSTGRES_DB = os.getenv("POSTGRES_DB", "report_delivery_db")
POSTGRES_HOST = os.getenv("POSTGRES_HOST", "postgres")
POSTGRES_PORT = os.getenv("POSTGRES_PORT", "5432")
DB_POOL_PRE_PING = os.getenv("DB_POOL_PRE_PING", "true").lower() == "true"

# Service identity, picked up by the logging filter
SERVICE_NAME = os.getenv("SERVICE_NAME", "rollback-service")
ENVIRONMENT = os.getenv("ENVIRONMENT", "local")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Retry budgets for contended writes
TRACK_MAX_ATTEMPTS = int(os.getenv("TRACK_MAX_ATTEMPTS", "3"))
VERSION_APPEND_MAX_ATTEMPTS = int(os.getenv("VERSION_APPEND_MAX_ATTEMPTS", "5"))
