"""
Reply line parser shared by the session and DNS transports
"""

import ipaddress
import logging
from datetime import date, datetime
from enum import Enum
from typing import Optional

from .errors import FieldParseError, ProtocolFormatError
from .models import ASN, Country, Name, Record


logger = logging.getLogger(__name__)

DELIMITER = '|'
DATE_FORMAT = '%Y-%m-%d'


class Schema(Enum):
    """
    Field layouts of the lookup service replies.

    - ADDRESS: verbose session reply for an address
      "ASN | IP | BGP Prefix | CC | Registry | Allocated | AS Name"
    - ORIGIN: TXT record of the origin zones, no name field
      "ASN | BGP Prefix | CC | Registry | Allocated"
    - ASN: session reply or TXT record for an ASN
      "ASN | CC | Registry | Allocated | AS Name"
    """
    ADDRESS = ('asn', 'address', 'range', 'country', 'registry', 'allocated', 'name')
    ORIGIN = ('asn', 'range', 'country', 'registry', 'allocated')
    ASN = ('asn', 'country', 'registry', 'allocated', 'name')

    @property
    def width(self) -> int:
        return len(self.value)


def split_fields(raw: str, schema: Schema) -> dict[str, str]:
    """Split a reply line into trimmed fields keyed by schema field name"""
    tokens = raw.split(DELIMITER)
    if len(tokens) != schema.width:
        raise ProtocolFormatError(
            f"expected {schema.width} fields for {schema.name.lower()} reply, "
            f"got {len(tokens)}: {raw.strip()!r}"
        )
    return {key: token.strip() for key, token in zip(schema.value, tokens)}


def parse_asn(text: str) -> ASN:
    try:
        return ASN.parse(text)
    except (TypeError, ValueError) as e:
        raise FieldParseError(f"could not parse ASN ({text!r}): {e}") from e


def parse_range(text: str):
    try:
        return ipaddress.ip_network(text, strict=False)
    except ValueError as e:
        raise FieldParseError(f"could not parse range ({text!r}): {e}") from e


def parse_address(text: str):
    try:
        return ipaddress.ip_address(text)
    except ValueError as e:
        raise FieldParseError(f"could not parse address ({text!r}): {e}") from e


def parse_country(text: str) -> Country:
    """Malformed codes are kept verbatim with no name rather than failing the line"""
    try:
        return Country.from_code(text)
    except ValueError:
        logger.debug("Keeping malformed country code %r", text)
        return Country(code=text, name='')


def parse_date(text: str) -> Optional[date]:
    """
    Lenient allocation date parsing.

    Many allocations have no date on record, so an empty or malformed
    value yields None instead of an error.
    """
    if not text:
        return None
    try:
        return datetime.strptime(text, DATE_FORMAT).date()
    except ValueError:
        logger.debug("Ignoring malformed allocation date %r", text)
        return None


def parse_line(raw: str, schema: Schema) -> Record:
    """
    Parse one reply line into a Record.

    Args:
        raw: Pipe-delimited reply line
        schema: Field layout of the line

    Returns:
        Record

    Raises:
        ProtocolFormatError: wrong number of fields
        FieldParseError: malformed ASN, address or range
    """
    fields = split_fields(raw, schema)

    asn = parse_asn(fields['asn'])
    address = parse_address(fields['address']) if 'address' in fields else None
    net = parse_range(fields['range']) if 'range' in fields else None

    if address is not None and net is not None and address not in net:
        raise FieldParseError(f"address {address} outside reported range {net}")

    name = None
    if 'name' in fields:
        name = Name(fields['name'])

    return Record(
        asn=asn,
        address=address,
        range=net,
        country=parse_country(fields['country']),
        registry=fields['registry'],
        allocated=parse_date(fields['allocated']),
        name=name
    )
