"""Console script entrypoint.

The CLI itself lives in `lifepass_troubleshooter.troubleshooter.main`.
"""

from __future__ import annotations

from lifepass_troubleshooter.troubleshooter.main import main

__all__ = ["main"]


if __name__ == "__main__":
    raise SystemExit(main())
