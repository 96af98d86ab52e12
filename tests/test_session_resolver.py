"""
Brief: Tests for the pipelined whois session resolver.

Inputs:
  - whois_server fixture (scripted in-process bulk server)

Outputs:
  - None (pytest assertions)
"""

import ipaddress
import socket
import threading
from datetime import date

import pytest

from asnlens.errors import (
    FieldParseError,
    ProtocolFormatError,
    SessionConnectError,
    TransportError,
    UpstreamError,
)
from asnlens.models import ASN
from asnlens.resolvers import SessionResolver

from .conftest import ADDRESS_REPLIES, ASN_REPLIES, default_respond


def _connect(server, **kwargs) -> SessionResolver:
    return SessionResolver(host="127.0.0.1", port=server.port, timeout=2.0, **kwargs)


def test_handshake_and_teardown(whois_server) -> None:
    server = whois_server()
    resolver = _connect(server)
    resolver.close()

    assert server.ended.wait(2)
    assert server.received[:2] == ["begin", "verbose"]
    assert server.received[-1] == "end"
    assert resolver.closed


def test_connect_failure_raises_session_connect_error() -> None:
    probe = socket.socket()
    probe.bind(("127.0.0.1", 0))
    port = probe.getsockname()[1]
    probe.close()

    with pytest.raises(SessionConnectError):
        SessionResolver(host="127.0.0.1", port=port, timeout=1.0)


def test_lookup_by_address_pipelines_batch(whois_server) -> None:
    server = whois_server()
    with _connect(server) as resolver:
        records = resolver.lookup_by_address(["8.8.8.8", "1.1.1.1", "9.9.9.9"])

    assert [int(r.asn) for r in records] == [15169, 13335, 19281]
    google = records[0]
    assert google.address == ipaddress.ip_address("8.8.8.8")
    assert google.range == ipaddress.ip_network("8.8.8.0/24")
    assert google.country.code == "US"
    assert google.registry == "arin"
    assert google.allocated == date(1992, 12, 1)
    assert str(google.name) == "GOOGLE, US"
    # empty allocation date is not an error
    assert records[2].allocated is None
    assert server.received[2:5] == ["8.8.8.8", "1.1.1.1", "9.9.9.9"]


def test_lookup_by_address_ipv6(whois_server) -> None:
    server = whois_server()
    with _connect(server) as resolver:
        record = resolver.lookup_one_by_address(ipaddress.ip_address("2001:4860:4860::8888"))

    assert record.asn == 15169
    assert record.address in record.range


def test_lookup_by_asn(whois_server) -> None:
    server = whois_server()
    with _connect(server) as resolver:
        records = resolver.lookup_by_asn([15169, "AS13335", ASN(64500)])

    assert [r.asn for r in records] == [15169, 13335, 64500]
    assert all(r.address is None and r.range is None for r in records)
    assert records[1].allocated == date(2010, 7, 14)
    assert records[2].country.name == "Unknown"
    assert server.received[2:5] == ["15169", "13335", "64500"]


def test_error_line_returns_prior_records(whois_server) -> None:
    server = whois_server()
    with _connect(server) as resolver:
        with pytest.raises(UpstreamError) as excinfo:
            resolver.lookup_by_address(["8.8.8.8", "192.0.2.1", "1.1.1.1"])

    assert str(excinfo.value) == "no match"
    assert len(excinfo.value.records) == 1
    assert excinfo.value.records[0].asn == 15169


def test_early_close_returns_partial_batch_without_error(whois_server) -> None:
    server = whois_server(close_after=2)
    with _connect(server) as resolver:
        records = resolver.lookup_by_address(["8.8.8.8", "1.1.1.1", "9.9.9.9"])

    assert len(records) == 2


def test_lookup_one_returns_none_on_empty_batch(whois_server) -> None:
    server = whois_server(close_after=0)
    with _connect(server) as resolver:
        assert resolver.lookup_one_by_address("8.8.8.8") is None
        assert resolver.lookup_one_by_asn(15169) is None


def test_short_asn_line_is_protocol_error(whois_server) -> None:
    server = whois_server(respond=lambda q: "15169 | US | arin | 2000-03-30")
    with _connect(server) as resolver:
        with pytest.raises(ProtocolFormatError) as excinfo:
            resolver.lookup_by_asn([15169])

    assert excinfo.value.records == ()


def test_malformed_asn_field_is_parse_error(whois_server) -> None:
    def respond(query):
        if query == "1.1.1.1":
            return "NA | 1.1.1.1 | NA | | other | | NA"
        return default_respond(query)

    server = whois_server(respond=respond)
    with _connect(server) as resolver:
        with pytest.raises(FieldParseError) as excinfo:
            resolver.lookup_by_address(["8.8.8.8", "1.1.1.1"])

    assert len(excinfo.value.records) == 1


def test_out_of_order_reply_detected(whois_server) -> None:
    swapped = {"8.8.8.8": ADDRESS_REPLIES["1.1.1.1"], "1.1.1.1": ADDRESS_REPLIES["8.8.8.8"]}
    server = whois_server(respond=swapped.get)
    with _connect(server) as resolver:
        with pytest.raises(ProtocolFormatError):
            resolver.lookup_by_address(["8.8.8.8", "1.1.1.1"])


def test_order_check_can_be_disabled(whois_server) -> None:
    swapped = {"15169": ASN_REPLIES["13335"], "13335": ASN_REPLIES["15169"]}
    server = whois_server(respond=swapped.get)
    with _connect(server, verify_order=False) as resolver:
        records = resolver.lookup_by_asn([15169, 13335])

    assert [r.asn for r in records] == [13335, 15169]


def test_empty_batch_does_not_touch_connection(whois_server) -> None:
    server = whois_server()
    with _connect(server) as resolver:
        assert resolver.lookup_by_address([]) == []
    assert server.ended.wait(2)
    assert server.received == ["begin", "verbose", "end"]


def test_malformed_input_rejected_before_sending(whois_server) -> None:
    server = whois_server()
    with _connect(server) as resolver:
        with pytest.raises(ValueError):
            resolver.lookup_by_address(["8.8.8.8", "not-an-ip"])
        # session is still aligned
        assert resolver.lookup_one_by_address("1.1.1.1").asn == 13335


def test_use_after_close_raises(whois_server) -> None:
    server = whois_server()
    resolver = _connect(server)
    resolver.close()
    resolver.close()

    with pytest.raises(TransportError):
        resolver.lookup_by_asn([15169])


def test_concurrent_batches_do_not_interleave(whois_server) -> None:
    server = whois_server()
    results = {}
    failures = []

    with _connect(server) as resolver:
        def worker(key, queries):
            try:
                for _ in range(20):
                    results[key] = resolver.lookup_by_address(queries)
            except Exception as e:  # pragma: no cover - surfaced below
                failures.append(e)

        threads = [
            threading.Thread(target=worker, args=("a", ["8.8.8.8", "1.1.1.1"])),
            threading.Thread(target=worker, args=("b", ["9.9.9.9", "2001:4860:4860::8888"])),
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join(5)

    assert not failures
    assert [r.asn for r in results["a"]] == [15169, 13335]
    assert [r.asn for r in results["b"]] == [19281, 15169]


def test_aborted_batch_does_not_poison_next_batch(whois_server) -> None:
    server = whois_server()
    with _connect(server) as resolver:
        with pytest.raises(UpstreamError):
            resolver.lookup_by_address(["8.8.8.8", "192.0.2.1", "1.1.1.1"])

        records = resolver.lookup_by_asn([15169])
        assert [r.asn for r in records] == [15169]
        assert resolver.lookup_one_by_address("9.9.9.9").asn == 19281


def test_leftover_replies_not_attributed_without_order_check(whois_server) -> None:
    server = whois_server()
    with _connect(server, verify_order=False) as resolver:
        with pytest.raises(UpstreamError):
            resolver.lookup_by_asn(["64501", "15169", "13335"])

        records = resolver.lookup_by_address(["9.9.9.9"])

    assert len(records) == 1
    assert records[0].asn == 19281
    assert str(records[0].address) == "9.9.9.9"


def test_parse_error_abort_then_next_batch(whois_server) -> None:
    def respond(query):
        if query == "8.8.8.8":
            return "NA | 8.8.8.8 | NA | | other | | NA"
        return default_respond(query)

    server = whois_server(respond=respond)
    with _connect(server) as resolver:
        with pytest.raises(FieldParseError) as excinfo:
            resolver.lookup_by_address(["8.8.8.8", "1.1.1.1", "9.9.9.9"])
        assert excinfo.value.records == ()

        assert [r.asn for r in resolver.lookup_by_asn(["AS13335", 15169])] == [13335, 15169]


def test_malformed_country_code_does_not_abort_batch(whois_server) -> None:
    def respond(query):
        if query == "1.1.1.1":
            return "13335 | 1.1.1.1 | 1.1.1.0/24 | A1 | apnic | 2011-08-11 | CLOUDFLARENET, US"
        return default_respond(query)

    server = whois_server(respond=respond)
    with _connect(server) as resolver:
        records = resolver.lookup_by_address(["8.8.8.8", "1.1.1.1"])

    assert len(records) == 2
    assert records[1].country.code == "A1"
    assert records[1].country.name == ""
