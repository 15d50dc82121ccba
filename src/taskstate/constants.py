"""Constants for taskstate."""

# On-disk naming
RECORD_ID_PREFIX = "task-"
LOCK_SUFFIX = ".lock"
PENDING_SUFFIX = ".pending"
BACKUP_SUFFIX = ".bak"
ARCHIVE_DIR = "archive"
POINTER_FILE = "current-task.md"
ERROR_LOG_FILE = "errors.log"
CONFIG_FILE = "config.toml"
DEFAULT_ROOT = ".tasks"

# Record files
TASK_FILE = "task.md"
CHECKLIST_FILE = "checklist.md"
HANDOFF_FILE = "handoff.md"
LOG_FILE = "activity.log"

# Locking (seconds)
LOCK_TIMEOUT = 5.0
LOCK_STALE_SECONDS = 30.0
LOCK_RETRY_INTERVAL = 0.1

# Logs and backups
ROTATION_THRESHOLD = 500
ROTATION_BACKUPS = 3
MAX_BACKUPS = 10

# Tail reading (bytes)
TAIL_WHOLE_FILE_LIMIT = 64 * 1024
TAIL_BLOCK_SIZE = 64 * 1024

# Active record cache (seconds)
RESOLVER_TTL = 1.0
