"""
High-level use cases for the user management service.

Each service module orchestrates the repository and core helpers to implement
business rules (admin floor, user mutations, sign-in, session claims).

Routers call these services instead of manipulating SQL sessions or tokens
directly.
"""
