# Copyright (c) Syntropy Systems
"""reval dashboard."""

from reval.dashboard.server import app, create_app

__all__ = ["app", "create_app"]
