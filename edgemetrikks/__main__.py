"""Module entrypoint.

Allows:
    python -m edgemetrikks
"""

from __future__ import annotations

import sys

from edgemetrikks.cli import main

if __name__ == "__main__":
    sys.exit(main())
