# api/__init__.py
from justicebot.api.server import app, create_app

__all__ = ["app", "create_app"]
