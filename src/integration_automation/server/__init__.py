"""FastAPI adapter for the automation engine.

Design intent:
- Keep business logic in `integration_automation.engine.*`
- Keep server-specific concerns (routing, CORS, status codes) here
"""

from __future__ import annotations

__all__ = ["create_app"]

from integration_automation.server.app import create_app
