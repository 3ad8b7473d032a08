"""Web service for Number-BATTLE."""

from _04_ui.app import create_app

__all__ = ["create_app"]
