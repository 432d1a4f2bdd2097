import os
from dotenv import load_dotenv

# ---------------------------
# Load environment variables
# ---------------------------
load_dotenv()

APP_TITLE = os.getenv("APP_TITLE", "Quiz Attempt Engine")

# ---------------------------
# Database
# ---------------------------
DATABASE_URL = os.getenv("DATABASE_URL")
SQL_ECHO = os.getenv("SQL_ECHO", "false").lower() == "true"

# ---------------------------
# Auth (tokens are issued elsewhere, only verified here)
# ---------------------------
SECRET_KEY = os.getenv("SECRET_KEY")
ALGORITHM = os.getenv("ALGORITHM", "HS256")

# ---------------------------
# Logging
# ---------------------------
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# ---------------------------
# Attempt writes
# ---------------------------
ATTEMPT_WRITE_RETRIES = int(os.getenv("ATTEMPT_WRITE_RETRIES", 3))

# ---------------------------
# Server
# ---------------------------
HOST = os.getenv("HOST", "127.0.0.1")
PORT = int(os.getenv("PORT", 8000))
