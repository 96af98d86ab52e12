"""
Data models for asnlens
"""

import ipaddress
from dataclasses import dataclass
from datetime import date
from typing import Optional, Union

from .countries import country_name


IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]
IPNetwork = Union[ipaddress.IPv4Network, ipaddress.IPv6Network]


class ASN(int):
    """
    Autonomous System Number.

    Behaves as a plain int; str() gives the display form "AS15169",
    `wire` gives the decimal text sent to the lookup service.
    """

    MAX = 2 ** 32 - 1

    def __new__(cls, value: int):
        if isinstance(value, bool) or not isinstance(value, int):
            raise TypeError(f"ASN must be an int, not {type(value).__name__}")
        if not 0 < value <= cls.MAX:
            raise ValueError(f"ASN out of range: {value}")
        return super().__new__(cls, value)

    @classmethod
    def parse(cls, text: str) -> 'ASN':
        """
        Parse "15169", "AS15169" or "as15169".

        Raises:
            ValueError: text is not a valid ASN
        """
        raw = text.strip()
        digits = raw[2:] if raw[:2].upper() == 'AS' else raw
        if not digits.isascii() or not digits.isdigit():
            raise ValueError(f"invalid ASN: {text!r}")
        return cls(int(digits))

    @property
    def wire(self) -> str:
        return str(int(self))

    def __str__(self) -> str:
        return f"AS{int(self)}"

    def __repr__(self) -> str:
        return f"ASN({int(self)})"


@dataclass(frozen=True)
class Country:
    """ISO country code and name"""
    code: str = ''
    name: str = ''

    @classmethod
    def from_code(cls, code: str) -> 'Country':
        """
        Build a Country from a two-letter code.

        An empty code yields an empty Country. Unknown but well-formed
        codes keep the code with an empty name.

        Raises:
            ValueError: code is not two ASCII letters
        """
        code = code.strip()
        if not code:
            return cls()
        if len(code) != 2 or not code.isascii() or not code.isalpha():
            raise ValueError(f"invalid country code: {code!r}")
        code = code.upper()
        return cls(code=code, name=country_name(code))

    def __bool__(self) -> bool:
        return bool(self.code)

    def __str__(self) -> str:
        return self.code


@dataclass(frozen=True)
class Name:
    """Organization / AS name as reported by the registry"""
    raw: str

    @property
    def short(self) -> str:
        """Handle before the first comma, e.g. "GOOGLE, US" -> "GOOGLE" """
        return self.raw.split(',', 1)[0].strip()

    def __str__(self) -> str:
        return self.raw


@dataclass(frozen=True)
class Record:
    """Ownership metadata for one address or ASN"""
    asn: ASN
    address: Optional[IPAddress] = None
    range: Optional[IPNetwork] = None
    country: Country = Country()
    registry: str = ''
    allocated: Optional[date] = None
    name: Optional[Name] = None

    def with_name(self, name: Optional[Name]) -> 'Record':
        return Record(
            asn=self.asn,
            address=self.address,
            range=self.range,
            country=self.country,
            registry=self.registry,
            allocated=self.allocated,
            name=name
        )

    def as_dict(self) -> dict:
        """JSON-serializable representation"""
        return {
            "asn": int(self.asn),
            "address": str(self.address) if self.address else None,
            "range": str(self.range) if self.range else None,
            "country_code": self.country.code or None,
            "country": self.country.name or None,
            "registry": self.registry or None,
            "allocated": self.allocated.isoformat() if self.allocated else None,
            "name": str(self.name) if self.name else None
        }
