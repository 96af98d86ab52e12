"""
asnlens - IP and ASN ownership lookups

Entry point for running as a module:
    python -m asnlens <query>...
"""

from .cli import main

if __name__ == '__main__':
    main()
