"""Kafka sink publishing rendered documents to a topic."""

import json
import logging
import time
from dataclasses import dataclass
from typing import Any

from confluent_kafka import KafkaException, Producer

from loan_engine.config import KafkaConfig
from loan_engine.exceptions import SinkError
from loan_engine.models.document import RenderedDocument
from loan_engine.sinks.serialization import document_metadata, to_dict

logger = logging.getLogger(__name__)


@dataclass
class ProducerStats:
    """Track producer delivery statistics."""

    sent: int = 0
    delivered: int = 0
    failed: int = 0
    bytes_sent: int = 0
    start_time: float | None = None
    end_time: float | None = None

    @property
    def success_rate(self) -> float:
        """Calculate success rate."""
        total = self.delivered + self.failed
        return self.delivered / total if total > 0 else 0.0

    @property
    def throughput(self) -> float:
        """Calculate documents per second achieved."""
        if self.start_time is None or self.end_time is None:
            return 0.0
        duration = self.end_time - self.start_time
        return self.sent / duration if duration > 0 else 0.0


class KafkaDocumentSink:
    """Publish each PDF as one message keyed by loan id.

    The message value is the raw PDF; the document's metadata travels in
    message headers so consumers can route without parsing the body.
    Ledger records can be published alongside as JSON with ``write_batch``.
    """

    def __init__(self, config: KafkaConfig | str) -> None:
        """Initialize Kafka sink.

        Parameters
        ----------
        config : KafkaConfig | str
            Producer configuration or bootstrap servers string.
        """
        if isinstance(config, str):
            config = KafkaConfig(bootstrap_servers=config)

        self.config = config
        self.producer = Producer(config.to_dict())
        self.stats = ProducerStats()

    def _delivery_callback(self, err: Any, msg: Any) -> None:
        """Handle delivery reports."""
        if err:
            self.stats.failed += 1
            logger.error("Delivery failed: %s", err)
        else:
            self.stats.delivered += 1
            logger.debug("Delivered to %s[%d]@%d", msg.topic(), msg.partition(), msg.offset())

    def _produce(self, topic: str, key: str | None, value: bytes, headers: list | None = None) -> None:
        if self.stats.start_time is None:
            self.stats.start_time = time.time()
        try:
            self.producer.produce(
                topic=topic,
                key=key.encode("utf-8") if key else None,
                value=value,
                headers=headers,
                callback=self._delivery_callback,
            )
        except (BufferError, KafkaException) as e:
            raise SinkError(f"Failed to produce to {topic}: {e}", topic=topic, key=key) from e

        self.stats.sent += 1
        self.stats.bytes_sent += len(value)
        self.producer.poll(0)

    def write_document(self, document: RenderedDocument) -> None:
        """Queue one document for delivery."""
        headers = [
            (name, str(value).encode("utf-8"))
            for name, value in document_metadata(document).items()
            if value is not None
        ]
        self._produce(self.config.topic, document.loan_id, document.content, headers)
        logger.debug("Queued %s for %s", document.filename, self.config.topic)

    def write_batch(self, topic: str, records: list[Any]) -> None:
        """Publish records as JSON, keyed by their ``loan_id``."""
        logger.info("Writing batch to %s: %d records", topic, len(records))

        for record in records:
            data = to_dict(record)
            value = json.dumps(data, ensure_ascii=False, default=str).encode("utf-8")
            self._produce(topic, data.get("loan_id"), value)

        self.flush()
        logger.info(
            "Batch complete: sent=%d, delivered=%d, failed=%d",
            self.stats.sent,
            self.stats.delivered,
            self.stats.failed,
        )

    def flush(self, timeout: float = 30.0) -> None:
        """Flush pending messages.

        Raises
        ------
        SinkError
            If messages are still queued after ``timeout``.
        """
        remaining = self.producer.flush(timeout)
        if remaining:
            raise SinkError(
                f"{remaining} messages not delivered within {timeout}s",
                remaining=remaining,
            )

    def close(self) -> None:
        """Flush and close the producer.

        Raises
        ------
        SinkError
            If any message failed delivery.
        """
        self.flush()
        self.stats.end_time = time.time()
        logger.info(
            "Kafka sink closed: sent=%d, delivered=%d, failed=%d",
            self.stats.sent,
            self.stats.delivered,
            self.stats.failed,
        )
        if self.stats.failed:
            raise SinkError(
                f"{self.stats.failed} of {self.stats.sent} messages failed delivery",
                failed=self.stats.failed,
            )
