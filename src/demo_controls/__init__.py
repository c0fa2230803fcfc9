"""Demo Controls.

Sets up and tears down the TaskFlow demo environment:
- configuration loaded from `.env`
- structured logging
- GitHub branch/commit/PR automation and Linear issue cleanup
"""

__version__ = "0.1.0"

from demo_controls.orchestrator.config import DemoSettings

__all__ = ["__version__", "DemoSettings"]
