"""
asnlens - IP and ASN ownership lookups

Resolves addresses and autonomous system numbers to their announcing
ASN, allocated range, country, registry and organization via the
Team Cymru whois bulk session or its DNS zones.
"""

__version__ = "1.0.0"
__author__ = "asnlens"
