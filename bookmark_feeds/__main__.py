"""Main module for bookmark_feeds.

This module allows the tool to be run as a Python module using:
python -m bookmark_feeds

It delegates to the command line's main function.
"""

from bookmark_feeds.cli.app import main

if __name__ == "__main__":
    main()
