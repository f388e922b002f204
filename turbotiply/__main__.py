"""``python -m turbotiply`` and the ``turbotiply`` console script."""

from __future__ import annotations

import logging

from turbotiply.app import run


def main() -> int:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    return run()


if __name__ == "__main__":
    raise SystemExit(main())
