"""``python -m ohlrun FILE``: save and run an OHL file from the shell."""

import sys

try:
    from .cli import run
except ImportError:
    # Executed as a plain script (no parent package).
    from ohlrun.cli import run


if __name__ == "__main__":
    sys.exit(run())
