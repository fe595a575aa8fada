"""Allow running as ``python -m urlmonitor``."""

from . import main

main()
