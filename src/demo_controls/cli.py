"""Console-script shim for `demo-controls`.

The CLI is implemented in `demo_controls.orchestrator.main`.
"""

from __future__ import annotations

from demo_controls.orchestrator.main import main

__all__ = ["main"]


if __name__ == "__main__":
    raise SystemExit(main())
