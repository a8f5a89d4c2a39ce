"""WebServer Configuration

Centralized configuration for the verification webserver.
All settings can be adjusted here without modifying the source code.
Paths and the record store backend can also be set through environment variables.

"""

import os
from pathlib import Path

# ============================================================================
# PATHS
# ============================================================================

# Project root and paths
PROJECT_ROOT = Path(__file__).parent.parent.parent
DATA_DIR = Path(os.environ.get("FINGERAUTH_DATA_DIR", PROJECT_ROOT / "data"))

# Database
DB_PATH = DATA_DIR / "fingerprints.db"
DB_ENCRYPTION_KEY = None  # Auto-generated on first run, stored in .db_key file
DB_KEY_FILE = DATA_DIR / ".db_key"

# Logs
LOG_DIR = Path(os.environ.get("FINGERAUTH_LOG_DIR", DATA_DIR / "logs"))
LOG_ACCESS = LOG_DIR / "access.log"
LOG_BIOMETRIC = LOG_DIR / "biometric.log"
LOG_ERROR = LOG_DIR / "error.log"
LOG_MAX_BYTES = 10 * 1024 * 1024  # 10MB per file
LOG_BACKUP_COUNT = 5  # Keep 5 backup files

# ============================================================================
# SERVER CONFIGURATION
# ============================================================================

# Network
HOST = "0.0.0.0"
PORT = 8080

# CORS
CORS_ORIGINS = ["*"]
CORS_ALLOW_CREDENTIALS = False

# Request limits
MAX_REQUEST_SIZE = 10 * 1024 * 1024  # 10MB (one base64 fingerprint image)

# ============================================================================
# RECORD STORE
# ============================================================================

# "sqlite" (local SQLCipher database) or "dynamodb"
RECORD_STORE = os.environ.get("FINGERAUTH_RECORD_STORE", "sqlite")
RECORD_STORES = ("sqlite", "dynamodb")

# DynamoDB
DYNAMODB_TABLE = os.environ.get("FINGERAUTH_DYNAMODB_TABLE", "Fingerprint-db")
AWS_REGION = os.environ.get("AWS_REGION")

# ============================================================================
# WORKERS
# ============================================================================

# Thread pool running the blocking verification pipeline
MAX_WORKERS = 4

# Transport-level timeout; the decision engine itself never times out
VERIFY_TIMEOUT = 30  # seconds

# Verbose output
VERBOSE = os.environ.get("FINGERAUTH_VERBOSE", "1") != "0"


# ============================================================================
# HELPER FUNCTIONS
# ============================================================================

def get_db_key() -> str:
    """Get or generate database encryption key."""
    if DB_KEY_FILE.exists():
        return DB_KEY_FILE.read_text().strip()

    # Generate new key
    import secrets
    key = secrets.token_urlsafe(32)

    # Save key
    DB_KEY_FILE.parent.mkdir(parents=True, exist_ok=True)
    DB_KEY_FILE.write_text(key)
    DB_KEY_FILE.chmod(0o600)  # Read/write for owner only

    return key


def ensure_directories():
    """Ensure all required directories exist."""
    dirs = [
        DATA_DIR,
        LOG_DIR,
        DB_PATH.parent,
    ]

    for directory in dirs:
        directory.mkdir(parents=True, exist_ok=True)


def validate_config():
    """Validate webserver settings."""
    errors = []

    if RECORD_STORE not in RECORD_STORES:
        errors.append(f"RECORD_STORE must be one of {RECORD_STORES} (got {RECORD_STORE!r})")

    if MAX_WORKERS <= 0:
        errors.append(f"MAX_WORKERS must be positive (got {MAX_WORKERS})")

    if VERIFY_TIMEOUT <= 0:
        errors.append(f"VERIFY_TIMEOUT must be positive (got {VERIFY_TIMEOUT})")

    if errors:
        raise ValueError("WebServer configuration validation failed:\n" + "\n".join(errors))


# Auto-initialize on import
validate_config()
ensure_directories()

if DB_ENCRYPTION_KEY is None:
    DB_ENCRYPTION_KEY = get_db_key()
