import os

from dotenv import load_dotenv

load_dotenv()

OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# "development" disables forwarded-host handling on auth redirects
ENVIRONMENT = os.getenv("ENVIRONMENT", "production")
SITE_URL = os.getenv("SITE_URL", "")

DATABASE_PATH = os.getenv("DATABASE_PATH", "journal.db")

DATABASE_URL = os.getenv("DATABASE_URL", "")
DATABASE_MAX_CONNECTIONS = int(os.getenv("DATABASE_MAX_CONNECTIONS", "5"))

# Auth
SESSION_COOKIE_NAME = os.getenv("SESSION_COOKIE_NAME", "journal_session")
LOGIN_CODE_TTL_SECONDS = int(os.getenv("LOGIN_CODE_TTL_SECONDS", "600"))
AUTH_EXPOSE_LOGIN_LINKS = os.getenv("AUTH_EXPOSE_LOGIN_LINKS", "false").lower() in ("1", "true", "yes", "on")

# Transcription relay
TRANSCRIBE_TIMEOUT_SECONDS = float(os.getenv("TRANSCRIBE_TIMEOUT_SECONDS", "30"))
RELAY_BASE_URL = os.getenv("RELAY_BASE_URL", "http://localhost:8000")

# Voice capture
SEGMENT_DURATION_SECONDS = float(os.getenv("SEGMENT_DURATION_SECONDS", "5"))
SEGMENT_GAP_SECONDS = float(os.getenv("SEGMENT_GAP_SECONDS", "0.1"))
MIN_SEGMENT_BYTES = 1024
