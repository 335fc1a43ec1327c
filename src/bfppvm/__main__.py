"""Module entry-point for ``python -m bfppvm``."""

from .cli import main

if __name__ == "__main__":
    raise SystemExit(main())
