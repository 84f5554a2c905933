"""
Entry point for running hookgate as a module.

Allows running the CLI via:
    python -m hookgate check config/hooks.yaml
    uv run python -m hookgate simulate config/hooks.yaml events.yaml
"""

import sys

from hookgate.cli import main

if __name__ == "__main__":
    sys.exit(main())
