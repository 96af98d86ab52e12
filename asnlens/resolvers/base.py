"""
Abstract base class for resolver implementations
"""

import ipaddress
from abc import ABC, abstractmethod
from typing import Iterable, Optional, Union

from ..models import ASN, IPAddress, Record


AddressInput = Union[str, ipaddress.IPv4Address, ipaddress.IPv6Address]
ASNInput = Union[str, int]


def to_address(value: AddressInput) -> IPAddress:
    """Normalize address input, raising ValueError when malformed"""
    if isinstance(value, (ipaddress.IPv4Address, ipaddress.IPv6Address)):
        return value
    return ipaddress.ip_address(value.strip())


def to_asn(value: ASNInput) -> ASN:
    """Normalize ASN input, raising ValueError when malformed"""
    if isinstance(value, ASN):
        return value
    if isinstance(value, str):
        return ASN.parse(value)
    return ASN(value)


class BaseResolver(ABC):
    """
    Resolves addresses and ASNs to ownership records.

    Batch lookups return records in input order. A batch that fails
    part-way raises an ASNLensError whose `records` holds what was
    resolved before the failure.
    """

    @abstractmethod
    def lookup_by_address(self, addresses: Iterable[AddressInput]) -> list[Record]:
        """
        Resolve a batch of addresses.

        Args:
            addresses: IPv4/IPv6 addresses

        Returns:
            Records in input order
        """
        pass

    @abstractmethod
    def lookup_by_asn(self, asns: Iterable[ASNInput]) -> list[Record]:
        """
        Resolve a batch of ASNs.

        Args:
            asns: ASNs as ints, ASN values or "AS<n>" text

        Returns:
            Records in input order; address and range are None
        """
        pass

    def lookup_one_by_address(self, address: AddressInput) -> Optional[Record]:
        """Single address convenience form, None when nothing came back"""
        records = self.lookup_by_address([address])
        return records[0] if records else None

    def lookup_one_by_asn(self, asn: ASNInput) -> Optional[Record]:
        """Single ASN convenience form, None when nothing came back"""
        records = self.lookup_by_asn([asn])
        return records[0] if records else None

    @abstractmethod
    def close(self):
        """Release resources"""
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
