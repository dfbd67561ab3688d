"""Allow running the CLI with ``python -m posterwall.cli``."""

from .main import main

main()
