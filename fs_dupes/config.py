"""
Configuration constants for the duplicate file finder.
"""

# --- Hashing ---
# MD5 is fast and collision resistance is not a security concern here.
HASH_ALGORITHM = "md5"
HASH_CHUNK_SIZE = 64 * 1024  # 64 KB chunks for reading

# --- Traversal ---
# Substring match against the full path, not exact segment match.
SKIP_PATTERNS = (
    ".git",
    "/target/",
    ".idea/",
)

# --- Concurrency ---
DEFAULT_MAX_WORKERS = 8
MAX_WORKERS_CEILING = 64
# Work queue holds at most (workers * factor) pending files before the walker blocks
WORK_QUEUE_FACTOR = 4

# --- Persistence ---
DEFAULT_DB_NAME = "filesystem_dupes.db"
WRITE_MAX_ATTEMPTS = 5
WRITE_RETRY_DELAY = 0.05  # seconds, multiplied by the attempt number

# --- Logging ---
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"
