"""Pure domain rules for user accounts (no FastAPI, no SQL)."""
