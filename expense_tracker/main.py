"""ASGI entrypoint, served with ``uvicorn expense_tracker.main:app``."""

from .core.app_factory import create_application

app = create_application()

__all__ = ("app",)
