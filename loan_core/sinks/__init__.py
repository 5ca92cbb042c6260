"""Output sinks for portfolio records and notification events."""

from loan_core.sinks.console import ConsoleSink
from loan_core.sinks.json_file import JsonFileSink
from loan_core.sinks.kafka import KafkaSink

__all__ = ["ConsoleSink", "JsonFileSink", "KafkaSink"]
