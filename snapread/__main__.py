"""Package entry point for ``python -m snapread``.

WHY: Users run the reader as ``python -m snapread read book.epub``
without installing the console script.

HOW: Delegates to the CLI's main().
"""

from snapread.cli import main

if __name__ == "__main__":
    main()
