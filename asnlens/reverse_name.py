"""
Reverse lookup names for the origin zones
"""

import ipaddress
from typing import Union

ORIGIN_SUFFIX = "origin.asn.cymru.com"
ORIGIN6_SUFFIX = "origin6.asn.cymru.com"
ASN_SUFFIX = "asn.cymru.com"

HEX_DIGITS = "0123456789abcdef"

AddressLike = Union[str, bytes, ipaddress.IPv4Address, ipaddress.IPv6Address]


def _packed(address: AddressLike) -> bytes:
    """Raw address bytes; IPv4-mapped IPv6 addresses collapse to 4 bytes"""
    if isinstance(address, (bytes, bytearray)):
        return bytes(address)
    if isinstance(address, str):
        address = ipaddress.ip_address(address.strip())
    if isinstance(address, ipaddress.IPv6Address) and address.ipv4_mapped:
        address = address.ipv4_mapped
    return address.packed


def _v4_name(packed: bytes) -> str:
    octets = '.'.join(str(b) for b in reversed(packed))
    return f"{octets}.{ORIGIN_SUFFIX}"


def _v6_name(packed: bytes) -> str:
    labels = []
    # 16-bit words from the last two bytes to the first two
    for i in range(len(packed), 0, -2):
        word = (packed[i - 2] << 8) | packed[i - 1]
        # nibbles from least to most significant
        for shift in range(0, 16, 4):
            labels.append(HEX_DIGITS[(word >> shift) & 0xF])
    return f"{'.'.join(labels)}.{ORIGIN6_SUFFIX}"


def for_address(address: AddressLike) -> str:
    """
    Build the origin zone name for an address.

    192.0.2.1 -> 1.2.0.192.origin.asn.cymru.com
    2001:db8::1 -> 1.0.0.0.(...).8.b.d.0.1.0.0.2.origin6.asn.cymru.com

    Args:
        address: Address text, ipaddress object, or 4/16 raw bytes

    Returns:
        Domain name to query for TXT records

    Raises:
        ValueError: unparseable text or raw bytes of the wrong length
    """
    packed = _packed(address)

    if len(packed) == 4:
        return _v4_name(packed)
    if len(packed) == 16:
        return _v6_name(packed)

    raise ValueError(f"could not encode address: invalid length ({len(packed)})")


def for_asn(asn: int) -> str:
    """ASN zone name, e.g. 15169.asn.cymru.com"""
    return f"{int(asn)}.{ASN_SUFFIX}"
