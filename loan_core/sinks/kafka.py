"""Kafka sink for publishing portfolio records and notification events."""

import json
import time
from dataclasses import dataclass, fields, is_dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Iterator

from confluent_kafka import KafkaException, Producer
from confluent_kafka.serialization import MessageField, SerializationContext

from loan_core.config import KafkaConfig
from loan_core.exceptions import SinkError
from loan_core.logging import get_logger
from loan_core.sinks.serialization import to_dict

logger = get_logger(__name__)

SCHEMA_NAMESPACE = "com.loancore.credit"
DEFAULT_SCHEMA_REGISTRY_URL = "http://localhost:8081"

_MONEY = {"type": "bytes", "logicalType": "decimal", "precision": 18, "scale": 2}
_DATE = {"type": "int", "logicalType": "date"}
_TIMESTAMP = {"type": "long", "logicalType": "timestamp-millis"}

# Avro schemas for flat entity types; everything else goes out as JSON
AVRO_SCHEMAS = {
    "loans": {
        "type": "record",
        "name": "Loan",
        "namespace": SCHEMA_NAMESPACE,
        "fields": [
            {"name": "loan_id", "type": "string"},
            {"name": "organization_id", "type": "string"},
            {"name": "facility_id", "type": ["null", "string"], "default": None},
            {"name": "reference_number", "type": "string"},
            {"name": "amount", "type": _MONEY},
            {"name": "sibor_rate", "type": _MONEY},
            {"name": "margin", "type": _MONEY},
            {"name": "start_date", "type": _DATE},
            {"name": "due_date", "type": _DATE},
            {"name": "status", "type": "string"},
            {"name": "credit_line_id", "type": ["null", "string"], "default": None},
            {"name": "interest_basis", "type": "string"},
            {"name": "cycle_number", "type": "int"},
            {"name": "settled_amount", "type": ["null", _MONEY], "default": None},
            {"name": "settled_date", "type": ["null", _DATE], "default": None},
            {"name": "notes", "type": ["null", "string"], "default": None},
            {"name": "created_at", "type": ["null", _TIMESTAMP], "default": None},
            {"name": "updated_at", "type": ["null", _TIMESTAMP], "default": None},
        ],
    },
    "bank_exposures": {
        "type": "record",
        "name": "BankExposure",
        "namespace": SCHEMA_NAMESPACE,
        "fields": [
            {"name": "bank_id", "type": "string"},
            {"name": "bank_name", "type": "string"},
            {"name": "outstanding", "type": _MONEY},
            {"name": "credit_limit", "type": _MONEY},
            {"name": "utilization", "type": _MONEY},
        ],
    },
}


# Configuration presets
RELIABLE = KafkaConfig(acks="all", batch_size=16384, linger_ms=5)
FAST = KafkaConfig(acks="0", batch_size=65536, linger_ms=50)
EVENT_BY_EVENT = KafkaConfig(acks="all", batch_size=1, linger_ms=0)


@dataclass
class ProducerStats:
    """Track producer delivery statistics."""

    sent: int = 0
    delivered: int = 0
    failed: int = 0
    start_time: float | None = None
    end_time: float | None = None

    @property
    def success_rate(self) -> float:
        """Calculate success rate."""
        total = self.delivered + self.failed
        return self.delivered / total if total > 0 else 0.0

    @property
    def throughput(self) -> float:
        """Calculate events per second achieved."""
        if self.start_time is None or self.end_time is None:
            return 0.0
        duration = self.end_time - self.start_time
        return self.sent / duration if duration > 0 else 0.0


class KafkaSink:
    """Publish records to ``<topic_prefix>.<entity>`` topics.

    Entity names without a dot are prefixed (``payments`` becomes
    ``loans.payments``); names with a dot are used as full topic names.
    """

    # Entity type to message key field; keys keep one loan's events ordered
    KEY_FIELDS = {
        "banks": "bank_id",
        "facilities": "facility_id",
        "credit_lines": "facility_id",
        "loans": "loan_id",
        "payments": "loan_id",
        "reminders": "loan_id",
        "due_notices": "subject",
        "reminder_events": "subject",
        "collateral": "collateral_id",
        "alerts": "alert_id",
        "bank_exposures": "bank_id",
        "snapshots": "organization_id",
    }

    def __init__(
        self,
        config: KafkaConfig | str,
        schema_registry_url: str | None = None,
    ) -> None:
        """Initialize Kafka sink.

        Parameters
        ----------
        config : KafkaConfig | str
            Producer configuration or bootstrap servers string.
        schema_registry_url : str | None
            Enables Avro for the entity types in ``AVRO_SCHEMAS``.
        """
        if isinstance(config, str):
            config = KafkaConfig(bootstrap_servers=config)

        self.config = config
        self.producer = Producer(config.to_dict())
        self.stats = ProducerStats()
        self._avro_serializers: dict[str, Any] = {}

        if schema_registry_url:
            self._init_avro_serializers(schema_registry_url)

    def _init_avro_serializers(self, url: str) -> None:
        """Initialize Avro serializers for each entity type."""
        try:
            from confluent_kafka.schema_registry import SchemaRegistryClient
            from confluent_kafka.schema_registry.avro import AvroSerializer

            client = SchemaRegistryClient({"url": url})
            for entity_type, schema in AVRO_SCHEMAS.items():
                self._avro_serializers[entity_type] = AvroSerializer(
                    client,
                    json.dumps(schema),
                    to_dict=self._to_avro_dict,
                )
            logger.info("Avro serializers initialized for: %s", list(AVRO_SCHEMAS.keys()))
        except ImportError:
            logger.warning(
                "confluent-kafka[avro] not installed. Using JSON serialization. "
                "Install with: pip install 'confluent-kafka[avro]'"
            )

    @staticmethod
    def _to_avro_dict(obj: Any, ctx: SerializationContext) -> dict:
        """Convert a flat model to an Avro-compatible dict."""
        if is_dataclass(obj):
            data = {f.name: getattr(obj, f.name) for f in fields(obj)}
        elif isinstance(obj, dict):
            data = obj
        else:
            raise SinkError(f"Cannot convert {type(obj).__name__} to Avro dict")

        result = {}
        for key, value in data.items():
            if isinstance(value, Decimal):
                # decimal(18, 2) as big-endian two's complement of value * 100
                scaled = int(value.scaleb(2).to_integral_value())
                byte_length = max(1, (scaled.bit_length() + 8) // 8)
                result[key] = scaled.to_bytes(byte_length, byteorder="big", signed=True)
            elif isinstance(value, Enum):
                result[key] = value.value
            elif isinstance(value, datetime):
                result[key] = int(value.timestamp() * 1000)
            elif isinstance(value, date):
                result[key] = (value - date(1970, 1, 1)).days
            else:
                result[key] = value
        return result

    def _delivery_callback(self, err: Any, msg: Any) -> None:
        """Handle delivery reports."""
        if err:
            self.stats.failed += 1
            logger.error("Delivery failed: %s", err)
        else:
            self.stats.delivered += 1
            logger.debug("Delivered to %s[%d]@%d", msg.topic(), msg.partition(), msg.offset())

    def topic_for(self, entity_type: str) -> str:
        """Full topic name for an entity type."""
        if "." in entity_type:
            return entity_type
        return f"{self.config.topic_prefix}.{entity_type.replace('_', '-')}"

    @staticmethod
    def entity_type(topic: str) -> str:
        """Entity type of a topic (``loans.due-notices`` -> ``due_notices``)."""
        return topic.split(".")[-1].replace("-", "_")

    def _get_key(self, entity_type: str, record: Any) -> str | None:
        """Extract message key from record based on entity type."""
        key_field = self.KEY_FIELDS.get(entity_type)
        if not key_field:
            return None

        if is_dataclass(record):
            value = getattr(record, key_field, None)
        elif isinstance(record, dict):
            value = record.get(key_field)
        else:
            return None
        return str(value) if value is not None else None

    def send(self, entity_type: str, record: Any, key: str | None = None) -> None:
        """Send a single record.

        Raises
        ------
        SinkError
            If the producer rejects the message (e.g. local queue full).
        """
        topic = self.topic_for(entity_type)
        entity = self.entity_type(topic)

        serializer = self._avro_serializers.get(entity)
        if serializer is not None:
            value = serializer(record, SerializationContext(topic, MessageField.VALUE))
        else:
            value = json.dumps(to_dict(record), ensure_ascii=False).encode("utf-8")

        if key is None:
            key = self._get_key(entity, record)

        try:
            self.producer.produce(
                topic=topic,
                key=key.encode("utf-8") if key else None,
                value=value,
                callback=self._delivery_callback,
            )
        except (BufferError, KafkaException) as exc:
            raise SinkError(f"Failed to produce to {topic}: {exc}") from exc
        self.stats.sent += 1
        self.producer.poll(0)

    def write_batch(self, entity_type: str, records: list[Any]) -> None:
        """Write a batch of records and wait for delivery."""
        topic = self.topic_for(entity_type)
        logger.info("Writing batch to %s: %d records", topic, len(records))

        for record in records:
            self.send(topic, record)

        self.flush()
        logger.info(
            "Batch complete: sent=%d, delivered=%d, failed=%d",
            self.stats.sent,
            self.stats.delivered,
            self.stats.failed,
        )

    def write_stream(
        self,
        topic: str,
        generator: Iterator[Any],
        rate_per_second: float,
        duration_seconds: float,
    ) -> ProducerStats:
        """Stream records at a fixed rate for a duration.

        Parameters
        ----------
        topic : str
            Entity type or full topic name.
        generator : Iterator[Any]
            Record source (infinite or finite).
        rate_per_second : float
            Target events per second.
        duration_seconds : float
            How long to stream.

        Returns
        -------
        ProducerStats
            Delivery statistics.
        """
        topic = self.topic_for(topic)
        logger.info(
            "Starting stream to %s: rate=%.1f/sec, duration=%.1fs",
            topic,
            rate_per_second,
            duration_seconds,
        )

        self.stats = ProducerStats()
        self.stats.start_time = time.time()
        interval = 1.0 / rate_per_second if rate_per_second > 0 else 0

        for record in generator:
            if time.time() - self.stats.start_time >= duration_seconds:
                break
            self.send(topic, record)
            if interval > 0:
                time.sleep(interval)

        self.flush()
        self.stats.end_time = time.time()

        logger.info(
            "Stream complete: sent=%d, delivered=%d, failed=%d, throughput=%.1f/sec",
            self.stats.sent,
            self.stats.delivered,
            self.stats.failed,
            self.stats.throughput,
        )
        return self.stats

    def flush(self, timeout: float = 30.0) -> None:
        """Flush pending messages."""
        remaining = self.producer.flush(timeout)
        if isinstance(remaining, int) and remaining > 0:
            logger.warning("%d messages still queued after flush", remaining)

    def close(self) -> None:
        """Flush and close the producer."""
        self.flush()
        logger.info(
            "Kafka sink closed: sent=%d, delivered=%d, failed=%d",
            self.stats.sent,
            self.stats.delivered,
            self.stats.failed,
        )
