"""
JSON export for asnlens
"""

import json
from datetime import datetime
from pathlib import Path
from typing import Optional

from ..models import Record
from .. import __version__


class JsonExporter:
    """
    Export lookup records to JSON format.

    Output format is designed to be both human-readable
    and machine-parseable.
    """

    def __init__(self, transport: str):
        self.transport = transport

    def export(self, records: list[Record], queries: list[str],
               errors: Optional[list[str]] = None,
               output_path: Optional[Path] = None) -> dict:
        """
        Export records to JSON.

        Args:
            records: Resolved records
            queries: Queries as given on the command line
            errors: Lookup error messages, if any
            output_path: Optional file path to write

        Returns:
            JSON-serializable dict
        """
        data = {
            "meta": {
                "version": __version__,
                "generator": "asnlens",
                "transport": self.transport,
                "data_source": "team_cymru",
                "generated_at": datetime.now().isoformat()
            },
            "queries": queries,
            "complete": len(records) == len(queries) and not errors,
            "errors": errors or [],
            "records": [record.as_dict() for record in records]
        }

        if output_path:
            self._write_file(data, output_path)

        return data

    def _write_file(self, data: dict, path: Path):
        """Write JSON to file"""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
