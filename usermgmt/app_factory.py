"""Entry points for uvicorn/gunicorn (``uvicorn usermgmt.app_factory:app``)."""
from usermgmt.app import create_app

app = create_app()

__all__ = ["app", "create_app"]
