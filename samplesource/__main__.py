"""Entry point for `python -m samplesource`.

Usage:
    python -m samplesource
    samplesource-controller
"""

from __future__ import annotations

import asyncio

from samplesource.app import main


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
