"""
Resolver transports for asnlens
"""

from .base import BaseResolver
from .directory import DirectoryResolver
from .session import SessionResolver

TRANSPORTS = ('whois', 'dns')


def open_resolver(transport: str = 'whois', **kwargs) -> BaseResolver:
    """
    Create a resolver for the given transport.

    Args:
        transport: "whois" for the TCP bulk session, "dns" for TXT lookups
        **kwargs: Passed to the resolver constructor

    Returns:
        Connected resolver
    """
    if transport == 'whois':
        return SessionResolver(**kwargs)
    if transport == 'dns':
        return DirectoryResolver(**kwargs)
    raise ValueError(f"unknown transport: {transport!r}")


__all__ = ['BaseResolver', 'DirectoryResolver', 'SessionResolver', 'TRANSPORTS', 'open_resolver']
