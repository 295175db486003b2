"""Module entry-point for ``python -m aws_compliance_guard``."""
from __future__ import annotations

from .cli import main

if __name__ == "__main__":
    raise SystemExit(main())
