"""
Pipelined lookups over the whois bulk session
"""

import logging
import socket
import threading
from typing import Iterable, Optional

from ..errors import (
    ASNLensError,
    FieldParseError,
    ProtocolFormatError,
    SessionConnectError,
    TransportError,
    UpstreamError,
)
from ..models import Record
from ..parser import Schema, parse_line
from .base import AddressInput, ASNInput, BaseResolver, to_address, to_asn


logger = logging.getLogger(__name__)


class SessionResolver(BaseResolver):
    """
    Resolver over one persistent TCP session to whois.cymru.com.

    The connection is opened in bulk verbose mode on construction. Each
    batch writes every query before reading any reply, then reads one
    reply line per query.

    Replies carry no correlation identifier: the service must answer in
    the order the queries were written. With `verify_order` enabled each
    reply is checked against the query in the same position (the verbose
    address reply echoes the address, the ASN reply echoes the ASN).

    A single lock covers the write and read phase of a batch, so batches
    from concurrent callers never interleave on the connection.

    If the connection closes before every reply arrived, the batch
    returns the records read so far without an error; callers compare
    the returned count with the number of queries.

    A batch aborted by an error or malformed reply leaves the replies to
    its remaining queries on the wire; the next batch reads and drops
    them before sending its own queries.
    """

    DEFAULT_HOST = "whois.cymru.com"
    DEFAULT_PORT = 43
    DEFAULT_TIMEOUT = 10.0

    EOL = b"\r\n"
    ERROR_MARKER = "Error:"
    ENCODING = "utf-8"

    def __init__(self, host: Optional[str] = None, port: Optional[int] = None,
                 timeout: Optional[float] = None, verify_order: bool = True):
        self.host = host or self.DEFAULT_HOST
        self.port = port or self.DEFAULT_PORT
        self.timeout = timeout if timeout is not None else self.DEFAULT_TIMEOUT
        self.verify_order = verify_order
        self._lock = threading.Lock()
        self._closed = False
        self._stale = 0

        try:
            self._sock = socket.create_connection(
                (self.host, self.port), timeout=self.timeout
            )
        except OSError as e:
            raise SessionConnectError(
                f"could not connect to {self.host}:{self.port}: {e}"
            ) from e

        self._reader = self._sock.makefile('rb')
        self._writer = self._sock.makefile('wb')

        try:
            self._handshake()
        except OSError as e:
            self._teardown()
            raise SessionConnectError(
                f"handshake with {self.host}:{self.port} failed: {e}"
            ) from e

        # Timeout only bounds connection establishment
        self._sock.settimeout(None)
        logger.info("Connected to %s:%d", self.host, self.port)

    def _handshake(self):
        """Enter bulk verbose mode and discard the greeting line"""
        self._write_line("begin")
        self._write_line("verbose")
        self._writer.flush()

        greeting = self._reader.readline()
        logger.debug("Greeting: %r", greeting.strip())

    def _write_line(self, text: str):
        self._writer.write(text.encode('ascii') + self.EOL)

    @property
    def closed(self) -> bool:
        return self._closed

    def lookup_by_address(self, addresses: Iterable[AddressInput]) -> list[Record]:
        targets = [to_address(a) for a in addresses]
        return self._run_batch(
            [str(a) for a in targets],
            Schema.ADDRESS,
            expected=targets,
            echoed=lambda record: record.address
        )

    def lookup_by_asn(self, asns: Iterable[ASNInput]) -> list[Record]:
        targets = [to_asn(a) for a in asns]
        return self._run_batch(
            [a.wire for a in targets],
            Schema.ASN,
            expected=targets,
            echoed=lambda record: record.asn
        )

    def _run_batch(self, queries: list[str], schema: Schema,
                   expected: list, echoed) -> list[Record]:
        """
        Write all queries, then read replies until every query has a
        record or the connection reaches EOF.

        Raises:
            TransportError: I/O failure, or the session is closed
            UpstreamError: the service answered with an error line
            ProtocolFormatError: reply has the wrong shape or order
            FieldParseError: reply field could not be parsed
        """
        records: list[Record] = []
        if not queries:
            return records

        with self._lock:
            if self._closed:
                raise TransportError("session is closed")

            self._discard_stale()

            logger.debug("Sending batch of %d %s queries", len(queries), schema.name.lower())

            try:
                for query in queries:
                    self._write_line(query)
                self._writer.flush()
            except OSError as e:
                raise TransportError(f"could not send queries: {e}") from e

            try:
                self._read_replies(records, len(queries), schema, expected, echoed)
            except (UpstreamError, ProtocolFormatError, FieldParseError):
                # The aborting reply was consumed; the rest are still in flight
                self._stale = len(queries) - len(records) - 1
                raise

        return records

    def _discard_stale(self):
        """Read and drop replies left over from an aborted batch"""
        while self._stale > 0:
            try:
                raw = self._reader.readline()
            except OSError as e:
                raise TransportError(f"could not read reply: {e}") from e
            if not raw:
                break
            self._stale -= 1
            logger.debug("Discarded stale reply %r", raw.strip())
        self._stale = 0

    def _read_replies(self, records: list[Record], total: int, schema: Schema,
                      expected: list, echoed):
        """Append parsed replies to records until total is reached or EOF"""
        while len(records) < total:
            try:
                raw = self._reader.readline()
            except OSError as e:
                raise TransportError(f"could not read reply: {e}", records) from e

            if not raw:
                logger.warning(
                    "Connection closed after %d of %d replies",
                    len(records), total
                )
                break

            line = raw.decode(self.ENCODING, errors='replace').rstrip('\r\n')

            if line.startswith(self.ERROR_MARKER):
                message = line[len(self.ERROR_MARKER):].strip()
                logger.warning("Batch aborted by upstream error: %s", message)
                raise UpstreamError(message, records)

            try:
                record = parse_line(line, schema)
            except ASNLensError as e:
                logger.warning("Batch aborted on malformed reply: %s", e)
                e.with_records(records)
                raise

            if self.verify_order:
                want = expected[len(records)]
                got = echoed(record)
                if got != want:
                    raise ProtocolFormatError(
                        f"reply for {got} arrived in the slot of {want}", records
                    )

            records.append(record)

    def close(self):
        """Send the end directive and close the connection"""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            try:
                self._write_line("end")
                self._writer.flush()
            except OSError as e:
                logger.debug("Could not send end directive: %s", e)
            finally:
                self._teardown()
        logger.info("Closed session to %s:%d", self.host, self.port)

    def _teardown(self):
        for stream in (self._writer, self._reader):
            try:
                stream.close()
            except OSError:
                pass
        self._sock.close()
