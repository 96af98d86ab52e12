import ipaddress
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console

from . import __version__
from .errors import ASNLensError
from .logging_config import init_logging
from .models import ASN
from .output import ConsoleOutput, JsonExporter
from .resolvers import TRANSPORTS, SessionResolver, open_resolver


console = Console()


def split_queries(queries: tuple[str, ...]) -> tuple[list, list]:
    """
    Split command line queries into addresses and ASNs.

    Raises:
        ValueError: a query is neither an address nor an ASN
    """
    addresses, asns = [], []
    for query in queries:
        try:
            addresses.append(ipaddress.ip_address(query.strip()))
            continue
        except ValueError:
            pass
        try:
            asns.append(ASN.parse(query))
        except ValueError:
            raise ValueError(f"not an IP address or ASN: {query!r}") from None
    return addresses, asns


@click.command()
@click.argument('queries', nargs=-1, required=True)
@click.option('-t', '--transport', default='whois', envvar='ASNLENS_TRANSPORT',
              type=click.Choice(TRANSPORTS, case_sensitive=False),
              help='Lookup transport (default: whois)')
@click.option('--host', default=SessionResolver.DEFAULT_HOST, envvar='ASNLENS_HOST',
              help='Whois bulk server (default: whois.cymru.com)')
@click.option('--port', default=SessionResolver.DEFAULT_PORT, type=int, envvar='ASNLENS_PORT',
              help='Whois bulk port (default: 43)')
@click.option('-w', '--timeout', default=SessionResolver.DEFAULT_TIMEOUT, type=float,
              envvar='ASNLENS_TIMEOUT',
              help='Connect timeout in seconds (default: 10)')
@click.option('--json', 'json_path', type=click.Path(),
              help='Export results to JSON file')
@click.option('-v', '--verbose', count=True,
              help='Log progress (-v info, -vv debug)')
@click.version_option(version=__version__)
def main(queries: tuple[str, ...], transport: str, host: str, port: int,
         timeout: float, json_path: Optional[str], verbose: int):
    """
    asnlens - IP and ASN ownership lookups.

    Resolve each QUERY (IP address or ASN) to its announcing ASN,
    allocated range, country, registry and organization.

    Examples:

        asnlens 8.8.8.8 2001:4860:4860::8888

        asnlens AS15169 13335 -t dns

        asnlens 1.1.1.1 --json output.json
    """
    init_logging(verbose)
    transport = transport.lower()

    try:
        addresses, asns = split_queries(queries)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="QUERY")

    output = ConsoleOutput()
    output.print_header(transport, len(addresses), len(asns))

    kwargs = {}
    if transport == 'whois':
        kwargs = dict(host=host, port=port, timeout=timeout)

    records = []
    errors: list[str] = []

    try:
        with open_resolver(transport, **kwargs) as resolver:
            batches = (
                ("Addresses", addresses, resolver.lookup_by_address),
                ("ASNs", asns, resolver.lookup_by_asn),
            )
            for label, items, lookup in batches:
                if not items:
                    continue

                try:
                    batch = lookup(items)
                except ASNLensError as e:
                    batch = list(e.records)
                    errors.append(str(e))
                    output.print_error(str(e))

                if len(batch) < len(items):
                    output.print_warning(
                        f"{len(batch)} of {len(items)} {label.lower()} resolved"
                    )
                if batch:
                    output.print_records(batch, label)
                records.extend(batch)

    except ASNLensError as e:
        output.print_error(str(e))
        errors.append(str(e))
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted[/]")
        sys.exit(130)

    if json_path:
        exporter = JsonExporter(transport)
        json_file = Path(json_path)
        exporter.export(records, list(queries), errors, json_file)
        console.print(f"\n[dim]Results exported to:[/] {json_file.absolute()}")

    if errors:
        sys.exit(1)


if __name__ == '__main__':
    main()
