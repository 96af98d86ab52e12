"""
ASN lookup via Team Cymru DNS service
"""

import ipaddress
import logging
from typing import Iterable, Optional

import dns.exception
import dns.resolver

from ..errors import ASNLensError, FieldParseError, NoRecordsError, TransportError
from ..models import Record
from ..parser import Schema, parse_line
from ..reverse_name import for_address, for_asn
from .base import AddressInput, ASNInput, BaseResolver, to_address, to_asn


logger = logging.getLogger(__name__)


class DirectoryResolver(BaseResolver):
    """
    ASN lookup via Team Cymru DNS service.

    Uses DNS TXT queries to:
    1. Get ASN, range and registry from IP: <reversed-ip>.origin.asn.cymru.com
       (or origin6.asn.cymru.com for IPv6)
    2. Get org name: <asn>.asn.cymru.com

    Holds no connection state; safe for concurrent use. Timeouts are
    those of the underlying dnspython resolver.
    """

    def __init__(self, resolver: Optional[dns.resolver.Resolver] = None):
        self._resolver = resolver or dns.resolver.Resolver()

    def _query_txt(self, domain: str) -> str:
        """Return the first TXT record for domain"""
        logger.debug("TXT %s", domain)
        try:
            answers = self._resolver.resolve(domain, 'TXT')
        except (dns.resolver.NXDOMAIN, dns.resolver.NoAnswer) as e:
            raise NoRecordsError(f"no records found for {domain}") from e
        except dns.exception.DNSException as e:
            raise TransportError(f"TXT query for {domain} failed: {e}") from e

        for rdata in answers:
            # Long TXT records arrive as several character-strings
            return b''.join(rdata.strings).decode('utf-8', errors='replace')

        raise NoRecordsError(f"no records found for {domain}")

    def lookup_one_by_address(self, address: AddressInput) -> Record:
        """
        Resolve one address.

        The origin zone carries no AS name, so a second lookup in the
        ASN zone supplies it. Failure of either lookup fails the whole
        address lookup.

        Raises:
            NoRecordsError, TransportError, ProtocolFormatError, FieldParseError
        """
        target = to_address(address)
        if isinstance(target, ipaddress.IPv6Address) and target.ipv4_mapped:
            target = target.ipv4_mapped

        txt = self._query_txt(for_address(target))
        origin = parse_line(txt, Schema.ORIGIN)

        if target not in origin.range:
            raise FieldParseError(f"address {target} outside reported range {origin.range}")

        try:
            as_record = self.lookup_one_by_asn(origin.asn)
        except ASNLensError as e:
            raise type(e)(f"could not retrieve {origin.asn}: {e}") from e

        return Record(
            asn=origin.asn,
            address=target,
            range=origin.range,
            country=origin.country,
            registry=origin.registry,
            allocated=origin.allocated,
            name=as_record.name
        )

    def lookup_one_by_asn(self, asn: ASNInput) -> Record:
        """
        Resolve one ASN.

        Raises:
            NoRecordsError, TransportError, ProtocolFormatError, FieldParseError
        """
        return parse_line(self._query_txt(for_asn(to_asn(asn))), Schema.ASN)

    def lookup_by_address(self, addresses: Iterable[AddressInput]) -> list[Record]:
        return self._run_each(self.lookup_one_by_address, [to_address(a) for a in addresses])

    def lookup_by_asn(self, asns: Iterable[ASNInput]) -> list[Record]:
        return self._run_each(self.lookup_one_by_asn, [to_asn(a) for a in asns])

    def _run_each(self, lookup, targets: list) -> list[Record]:
        """Look up targets in order, stopping at the first failure"""
        records: list[Record] = []
        for target in targets:
            try:
                records.append(lookup(target))
            except ASNLensError as e:
                logger.warning("Lookup of %s failed after %d records: %s", target, len(records), e)
                e.with_records(records)
                raise
        return records

    def close(self):
        """Nothing to release"""
        pass
