# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
See src/daybook/config.py for parsing and defaults.

This file exists to make the repo self-documenting even without opening .env.example.
"""

ENV_VARS = {
    # App / logging
    "DAYBOOK_APP_NAME": "App display name (default: daybook).",
    "DAYBOOK_LOG_LEVEL": "Console logging level (default: INFO).",
    # Paths (gitignored)
    "DAYBOOK_DATA_DIR": "Local data directory, holds daybook.log (default: .local/daybook).",
    "DAYBOOK_DB_PATH": "SQLite database path (default: <data_dir>/daybook.sqlite3).",
    # Domain policy
    "DAYBOOK_CASCADE_POLICY": (
        "forward_only (default): finishing the last subtask completes the task. "
        "bidirectional: an incomplete subtask also reopens a completed task."
    ),
    "DAYBOOK_UNCATEGORIZED_LABEL": "Name of the stats bucket for tasks without a category.",
    # HTTP
    "DAYBOOK_HOST": "Bind address (default: 127.0.0.1).",
    "DAYBOOK_PORT": "Bind port (default: 8000).",
    "DAYBOOK_USER_HEADER": "Request header carrying the authenticated user id (default: X-User-Id).",
}
