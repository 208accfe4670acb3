# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
This file exists to make the repo self-documenting even without opening .env.example.
"""

ENV_VARS = {
    # App / logging
    "SIGNAGE_APP_NAME": "App display name (default: signage).",
    "SIGNAGE_LOG_LEVEL": "Console logging level (default: INFO). The log file always gets DEBUG.",
    # Paths (gitignored)
    "SIGNAGE_DATA_DIR": "Local data directory (default: .local/signage).",
    "SIGNAGE_DB_PATH": "SQLite database path (default: <data_dir>/signage.sqlite3).",
    # Task descriptors
    "SIGNAGE_BUILTIN_TASKS_DIR": "Directory of built-in *.task descriptors (default: shipped with the package).",
    "SIGNAGE_CUSTOM_TASKS_DIR": "Directory of custom *.task descriptors (default: <data_dir>/custom).",
    "SIGNAGE_TASK_CONFIG_LOCKED": "Hide installable task types and mark tasks read-only (true/false).",
    # Scheduler / executor
    "SIGNAGE_SCHEDULER_ENABLED": "Run the polling scheduler in the background (true/false, default true).",
    "SIGNAGE_SCHEDULER_INTERVAL_SECONDS": "Seconds between scheduler ticks (default: 60).",
    "SIGNAGE_RUN_LOCK_ENABLED": "Take an advisory per-task lock around each run (true/false, default true).",
    "SIGNAGE_RUN_LOCK_STALE_SECONDS": "Age after which an abandoned run lock is taken over (default: 3600).",
    # Console
    "SIGNAGE_CONSOLE_ENABLED": "Start the admin console (true/false, default true).",
    "SIGNAGE_OPERATOR_USER": "User name tasks run as (default: admin).",
}
