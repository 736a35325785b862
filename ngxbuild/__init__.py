"""Clone an nginx source tree together with its modules and libraries, then build it."""
from __future__ import annotations

from .cli import main

__all__ = ["main"]
