"""Entry point for `python -m donation_ledger`."""

import sys

from donation_ledger.cli.main import main


if __name__ == "__main__":
    sys.exit(main())
