"""JSON file sink for exporting records to files."""

import json
import time
from pathlib import Path
from typing import Any, Iterator

from loan_core.exceptions import SinkError
from loan_core.logging import get_logger
from loan_core.sinks.serialization import to_dict

logger = get_logger(__name__)


class JsonFileSink:
    """Output records to one JSON file per entity type."""

    def __init__(self, output_dir: str | Path, pretty: bool = False) -> None:
        """Initialize JSON file sink.

        Parameters
        ----------
        output_dir : str | Path
            Directory to write JSON files (created if missing).
        pretty : bool
            Pretty-print JSON output.

        Raises
        ------
        SinkError
            If the directory cannot be created.
        """
        self.output_dir = Path(output_dir)
        try:
            self.output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise SinkError(f"Cannot create output directory {self.output_dir}: {exc}") from exc
        self.pretty = pretty
        self._counts: dict[str, int] = {}

    def write_batch(self, entity_type: str, records: list[Any]) -> None:
        """Write a batch of records to ``<entity_type>.json``, replacing it."""
        file_path = self.output_dir / f"{entity_type}.json"
        data = [to_dict(record) for record in records]

        try:
            with open(file_path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2 if self.pretty else None, ensure_ascii=False)
        except OSError as exc:
            raise SinkError(f"Failed to write {file_path}: {exc}") from exc

        self._counts[entity_type] = len(records)
        logger.debug("Wrote %d %s records to %s", len(records), entity_type, file_path)

    def write_stream(
        self,
        topic: str,
        generator: Iterator[Any],
        rate_per_second: float,
        duration_seconds: float,
    ) -> int:
        """Stream records to a JSON Lines file named after the topic."""
        # loans.due-notices -> loans_due-notices.jsonl
        file_path = self.output_dir / (topic.replace(".", "_") + ".jsonl")

        interval = 1.0 / rate_per_second if rate_per_second > 0 else 0
        start_time = time.time()
        count = 0

        try:
            with open(file_path, "w", encoding="utf-8") as f:
                for record in generator:
                    if time.time() - start_time >= duration_seconds:
                        break
                    f.write(json.dumps(to_dict(record), ensure_ascii=False) + "\n")
                    count += 1
                    if interval > 0:
                        time.sleep(interval)
        except OSError as exc:
            raise SinkError(f"Failed to write {file_path}: {exc}") from exc

        self._counts[topic] = count
        return count

    def close(self) -> None:
        """Log what was written."""
        logger.info("JSON files written to: %s", self.output_dir)
        for entity_type, count in self._counts.items():
            logger.info("  %s: %d records", entity_type, count)
