"""
Configuration for the ConvoKeep archive.

Values are read from the environment (optionally via a .env file).
"""

import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# === STORAGE ===
DATABASE_URL = os.getenv("CONVOKEEP_DATABASE_URL", "sqlite:///./data/convokeep.db")
SQL_ECHO = os.getenv("CONVOKEEP_SQL_ECHO", "false").lower() == "true"

# Current schema version; bump together with a new migration in db/migrations/versions
SCHEMA_VERSION = 3

# === INGESTION ===
BATCH_SIZE = int(os.getenv("CONVOKEEP_BATCH_SIZE", "50"))  # Conversations per write transaction
DEFAULT_TITLE = "Untitled Conversation"

# === QUERIES ===
DEFAULT_PAGE_SIZE = int(os.getenv("CONVOKEEP_PAGE_SIZE", "20"))

# === EXPORT ===
EXPORT_VERSION = "1.0"
EXPORT_SOURCE = "convokeep"

# === LOGGING ===
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
