#!/usr/bin/env python3
"""SIEVEDNS main entry point.

Usage::

    python main.py resolve domains.txt -r resolvers.txt
    python main.py bruteforce wordlist.txt example.com -r resolvers.txt -w found.txt
    python main.py version
    python main.py config
"""

from sievedns.cli import main

if __name__ == "__main__":
    main()
