"""`python -m dellg.tray` entrypoint.

Handy for runs from a source checkout; installed users get the `dellg`
console script.
"""

from __future__ import annotations

from .entrypoint import main


if __name__ == "__main__":
    main()
