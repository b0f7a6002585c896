"""Entry point for 'python -m trove' command.

This module allows the Trove CLI to be invoked using 'python -m trove'.
"""

from trove.cli import main

if __name__ == "__main__":
    main()
