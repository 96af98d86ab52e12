"""
Brief: Shared fixtures for asnlens tests.

Provides a scripted in-process whois bulk server so the session resolver
can be exercised without network access.
"""

import socket
import socketserver
import threading
from typing import Callable, Optional

import pytest


GREETING = b"Bulk mode; whois.cymru.com [2024-05-01 12:00:00 +0000]\r\n"

ADDRESS_REPLIES = {
    "8.8.8.8": "15169   | 8.8.8.8          | 8.8.8.0/24          | US | arin     | 1992-12-01 | GOOGLE, US",
    "1.1.1.1": "13335   | 1.1.1.1          | 1.1.1.0/24          | AU | apnic    | 2011-08-11 | CLOUDFLARENET, US",
    "9.9.9.9": "19281   | 9.9.9.9          | 9.9.9.0/24          | US | arin     |            | QUAD9-AS-1, US",
    "2001:4860:4860::8888": "15169   | 2001:4860:4860::8888 | 2001:4860::/32 | US | arin | 2005-03-14 | GOOGLE, US",
    "192.0.2.1": "Error: no match",
}

ASN_REPLIES = {
    "15169": "15169   | US | arin     | 2000-03-30 | GOOGLE, US",
    "13335": "13335   | US | arin     | 2010-07-14 | CLOUDFLARENET, US",
    "64500": "64500   | ZZ | other    |            | ",
}


class ScriptedWhoisServer(socketserver.ThreadingTCPServer):
    """Brief: whois bulk server answering queries from a callable.

    Inputs:
      - respond: query text -> reply line (without terminator)
      - close_after: stop replying and close after this many replies

    Outputs:
      - received: every line the client sent, handshake included
      - ended: set when the client sent the end directive
    """

    allow_reuse_address = True
    daemon_threads = True

    def __init__(self, respond: Callable[[str], str], close_after: Optional[int] = None):
        super().__init__(("127.0.0.1", 0), _WhoisHandler)
        self.respond = respond
        self.close_after = close_after
        self.received: list[str] = []
        self.ended = threading.Event()

    @property
    def port(self) -> int:
        return self.server_address[1]


class _WhoisHandler(socketserver.StreamRequestHandler):

    def handle(self):
        server = self.server
        for _ in range(2):
            server.received.append(self.rfile.readline().decode().strip())
        self.wfile.write(GREETING)

        sent = 0
        while True:
            line = self.rfile.readline()
            if not line:
                break
            query = line.decode().strip()
            server.received.append(query)
            if query == "end":
                server.ended.set()
                break
            if server.close_after is not None and sent >= server.close_after:
                # Half-close so buffered replies reach the client before EOF
                self.request.shutdown(socket.SHUT_WR)
                self._drain()
                break
            self.wfile.write(server.respond(query).encode() + b"\r\n")
            sent += 1

    def _drain(self):
        while True:
            line = self.rfile.readline()
            if not line:
                break
            query = line.decode().strip()
            self.server.received.append(query)
            if query == "end":
                self.server.ended.set()
                break


def default_respond(query: str) -> str:
    if query in ADDRESS_REPLIES:
        return ADDRESS_REPLIES[query]
    if query in ASN_REPLIES:
        return ASN_REPLIES[query]
    return "Error: no match"


@pytest.fixture
def whois_server():
    """Brief: Factory fixture starting scripted whois servers.

    Inputs:
      - respond (optional): reply callable, defaults to canned replies
      - close_after (optional): replies before the server closes

    Outputs:
      - ScriptedWhoisServer listening on 127.0.0.1
    """
    servers = []

    def start(respond: Callable[[str], str] = default_respond,
              close_after: Optional[int] = None) -> ScriptedWhoisServer:
        server = ScriptedWhoisServer(respond, close_after)
        thread = threading.Thread(target=server.serve_forever, daemon=True)
        thread.start()
        servers.append(server)
        return server

    yield start

    for server in servers:
        server.shutdown()
        server.server_close()
