"""Package entry point for ``python -m suiteloader``.

WHY: Users run the loader as ``python -m suiteloader --list`` without
installing a console script.

HOW: Delegates to the CLI's main() function.
"""

from suiteloader.cli import main

if __name__ == "__main__":
    main()
