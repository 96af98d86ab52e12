"""
Exceptions raised by asnlens resolvers

Every error carries the records accumulated before the failure so callers
can decide whether to salvage a partially completed batch.
"""

from typing import Iterable, Optional

from .models import Record


class ASNLensError(Exception):
    """Base class for lookup failures"""

    def __init__(self, message: str, records: Optional[Iterable[Record]] = None):
        super().__init__(message)
        self.records: tuple[Record, ...] = tuple(records or ())

    def with_records(self, records: Iterable[Record]) -> 'ASNLensError':
        """Attach partial results and return self for re-raising"""
        self.records = tuple(records)
        return self


class SessionConnectError(ASNLensError):
    """Dial or handshake with the lookup service failed"""


class TransportError(ASNLensError):
    """I/O failure while talking to the lookup service"""


class ProtocolFormatError(ASNLensError):
    """Reply line does not match the expected schema"""


class UpstreamError(ASNLensError):
    """The lookup service reported an error"""


class FieldParseError(ASNLensError):
    """A reply field could not be interpreted"""


class NoRecordsError(ASNLensError):
    """A DNS query produced no TXT records"""
