"""Output sinks for generated documents and ledger exports."""

from loan_engine.sinks.console import ConsoleSink
from loan_engine.sinks.file import FileDocumentSink
from loan_engine.sinks.json_file import JsonFileSink
from loan_engine.sinks.kafka import KafkaDocumentSink

__all__ = ["ConsoleSink", "FileDocumentSink", "JsonFileSink", "KafkaDocumentSink"]
