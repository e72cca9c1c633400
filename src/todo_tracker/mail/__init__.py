"""Mailer implementations (SMTP and an offline logging fallback)."""
