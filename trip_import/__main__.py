"""Module entry point: python -m trip_import ..."""

from __future__ import annotations

from trip_import.cli import main


if __name__ == "__main__":
    raise SystemExit(main())
