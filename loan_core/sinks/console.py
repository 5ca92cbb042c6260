"""Console sink for debugging and development."""

import json
import time
from typing import Any, Iterator

from loan_core.sinks.serialization import to_dict


class ConsoleSink:
    """Output records to console (stdout) for debugging."""

    def __init__(self, pretty: bool = True, max_records: int | None = None) -> None:
        """Initialize console sink.

        Parameters
        ----------
        pretty : bool
            Pretty-print JSON output.
        max_records : int | None
            Maximum records to print per batch (None for all).
        """
        self.pretty = pretty
        self.max_records = max_records
        self._counts: dict[str, int] = {}

    def write_batch(self, entity_type: str, records: list[Any]) -> None:
        """Write a batch of records to console."""
        print(f"\n{'='*60}")
        print(f"Entity: {entity_type} ({len(records)} records)")
        print("=" * 60)

        display_records = records[: self.max_records] if self.max_records else records

        for record in display_records:
            print(self._dumps(record))

        if self.max_records and len(records) > self.max_records:
            print(f"... and {len(records) - self.max_records} more records")

        self._counts[entity_type] = self._counts.get(entity_type, 0) + len(records)

    def write_stream(
        self,
        topic: str,
        generator: Iterator[Any],
        rate_per_second: float,
        duration_seconds: float,
    ) -> int:
        """Print records from ``generator`` at a fixed rate; return the count."""
        print(f"\n{'='*60}")
        print(f"Streaming to: {topic}")
        print(f"Rate: {rate_per_second}/sec, Duration: {duration_seconds}s")
        print("=" * 60)

        interval = 1.0 / rate_per_second if rate_per_second > 0 else 0
        start_time = time.time()
        count = 0

        for record in generator:
            if time.time() - start_time >= duration_seconds:
                break
            print(self._dumps(record))
            count += 1
            if interval > 0:
                time.sleep(interval)

        self._counts[topic] = self._counts.get(topic, 0) + count
        print(f"\nStreamed {count} records in {time.time() - start_time:.2f}s")
        return count

    def close(self) -> None:
        """Print summary and close."""
        print(f"\n{'='*60}")
        print("Console Sink Summary")
        print("=" * 60)
        for entity_type, count in self._counts.items():
            print(f"  {entity_type}: {count} records")

    def _dumps(self, record: Any) -> str:
        indent = 2 if self.pretty else None
        return json.dumps(to_dict(record), indent=indent, ensure_ascii=False)
