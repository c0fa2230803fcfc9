"""FastAPI server adapter for demo-controls.

This module exposes the operator panel and a REST API over the demo pipelines.

Design intent:
- Keep pipeline logic in `demo_controls.orchestrator.*`
- Keep server-specific concerns (routing, CORS, job tracking) here
"""

from __future__ import annotations

__all__ = ["create_app"]

from demo_controls.server.app import create_app
