"""
FastAPI routers grouped by domain (users, auth).

Each module exposes an APIRouter that app.py includes. Handlers stay thin:
they resolve the request context and delegate to services kept on app.state.
"""
