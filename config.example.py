# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
Do NOT commit real secrets. Use a local, gitignored .env.

This file exists to make the repo self-documenting even without opening .env.example.
"""

ENV_VARS = {
    # App / logging
    "TODO_APP_NAME": "App display name (default: todo-tracker).",
    "TODO_LOG_LEVEL": "Console logging level (default: INFO).",
    "TODO_ENVIRONMENT": "production | development (falls back to NODE_ENV; default: development).",
    # Paths (gitignored)
    "TODO_DATA_DIR": "Local data directory, also holds the log file (default: .local/todo).",
    "TODO_TASKS_DB_PATH": "SQLite database path (default: <data_dir>/tasks.sqlite3).",
    # Reminder sweep
    "TODO_NOTIFY_INTERVAL_SECONDS": "Seconds between sweeps (default: 3600 in production, 300 otherwise).",
    "TODO_NOTIFY_WINDOW_HOURS": "Remind about tasks due within this many hours (default: 24).",
    "TODO_CLIENT_URL": "Frontend base URL used for the 'View in Todo App' link (or CLIENT_URL).",
    # SMTP (leave EMAIL_HOST empty to log reminders instead of sending them)
    "TODO_EMAIL_HOST": "SMTP host (or EMAIL_HOST).",
    "TODO_EMAIL_PORT": "SMTP port (or EMAIL_PORT; default: 587).",
    "TODO_EMAIL_USER": "SMTP username, also the From address (or EMAIL_USER).",
    "TODO_EMAIL_PASS": "SMTP password (or EMAIL_PASS).",
    "TODO_EMAIL_FROM_NAME": "Display name in the From header (default: Todo App).",
    "TODO_EMAIL_USE_TLS": "Use STARTTLS (true/false; default: true).",
    "TODO_EMAIL_TIMEOUT_SECONDS": "SMTP socket timeout (default: 20).",
}
