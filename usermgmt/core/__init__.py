"""
Core utilities shared across the user management service.

This package hosts configuration, logging setup and the password hashing
primitive. Routers and services depend on these helpers instead of reading
os.environ or calling argon2 directly.
"""
