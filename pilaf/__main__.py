"""
Module entrypoint:

  python -m pilaf run stories/basic.yaml --config config-rcon.yaml
"""
from __future__ import annotations

from .cli import main

if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
