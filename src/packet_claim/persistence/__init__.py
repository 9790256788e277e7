"""SQLAlchemy models and session helpers for packets and their records."""
