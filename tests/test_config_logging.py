"""Tests for config and logging."""

import json
import logging
import os
import sys
from datetime import date
from decimal import Decimal
from pathlib import Path
from unittest.mock import patch

import pytest
from reportlab.lib.pagesizes import A4, LETTER

from loan_engine.config import (
    BrandingConfig,
    EngineConfig,
    KafkaConfig,
    LayoutConfig,
    OutputConfig,
    WatermarkConfig,
    resolve_page_size,
)
from loan_engine.exceptions import (
    ConfigurationError,
    InstallmentNotSettled,
    InvalidTopupSequence,
    MissingRequiredAsset,
)
from loan_engine.logging import JsonFormatter, LoanContextFormatter, setup_logging

ENV_VARS = [
    "LOAN_ENGINE_PAGE_SIZE",
    "LOAN_ENGINE_WATERMARK_TEXT",
    "LOAN_ENGINE_WATERMARK_LAYER",
    "LOAN_ENGINE_COMPANY_NAME",
    "LOAN_ENGINE_CURRENCY_LABEL",
    "LOAN_ENGINE_JURISDICTION",
    "KAFKA_BOOTSTRAP_SERVERS",
    "KAFKA_DOCUMENT_TOPIC",
    "KAFKA_ACKS",
    "LOAN_ENGINE_DOCUMENT_DIR",
    "OUTPUT_DIR",
    "PRETTY_JSON",
    "LOAN_ENGINE_PROCESSING_FEE_RATE",
    "LOG_LEVEL",
    "SEED",
]


@pytest.fixture
def clean_env():
    """Run with none of the engine's environment variables set."""
    saved = {k: os.environ.pop(k) for k in ENV_VARS if k in os.environ}
    yield
    for k in ENV_VARS:
        os.environ.pop(k, None)
    os.environ.update(saved)


class TestPageSizes:
    """Tests for page size resolution."""

    def test_named_sizes(self) -> None:
        assert resolve_page_size("A4") == A4
        assert resolve_page_size("letter") == LETTER

    def test_unknown_size(self) -> None:
        with pytest.raises(ConfigurationError) as exc_info:
            resolve_page_size("B7")

        assert exc_info.value.context["page_size"] == "B7"


class TestLayoutConfig:
    """Tests for LayoutConfig."""

    def test_default_values(self) -> None:
        config = LayoutConfig()

        assert config.page_size == "A4"
        assert config.dimensions == A4
        assert config.content_width == pytest.approx(A4[0] - 112)

    def test_custom_margins(self) -> None:
        config = LayoutConfig(page_size="LETTER", margin_left=36, margin_right=36)

        assert config.content_width == pytest.approx(LETTER[0] - 72)


class TestWatermarkConfig:
    """Tests for WatermarkConfig."""

    def test_default_values(self) -> None:
        config = WatermarkConfig()

        assert config.text == "JLS FINANCE LTD"
        assert config.angle == 45.0
        assert config.font_size == 50.0
        assert config.gray == pytest.approx(220 / 255, abs=0.01)
        assert config.layer == "under"

    def test_invalid_layer(self) -> None:
        with pytest.raises(ConfigurationError):
            WatermarkConfig(layer="beside")


class TestBrandingConfig:
    """Tests for BrandingConfig."""

    def test_rendered_terms(self) -> None:
        terms = BrandingConfig().rendered_terms()

        assert len(terms) == 3
        assert "2% per month" in terms[1]
        assert "Anytown courts" in terms[2]

    def test_custom_jurisdiction(self) -> None:
        terms = BrandingConfig(jurisdiction="Pune", penalty_rate=Decimal("1.5")).rendered_terms()

        assert "1.5% per month" in terms[1]
        assert "Pune courts" in terms[2]


class TestKafkaConfig:
    """Tests for KafkaConfig."""

    def test_default_values(self) -> None:
        config = KafkaConfig()

        assert config.bootstrap_servers == "localhost:9092"
        assert config.topic == "loans.documents"
        assert config.acks == "all"

    def test_to_dict(self) -> None:
        result = KafkaConfig(bootstrap_servers="kafka:9092", compression="gzip").to_dict()

        assert result["bootstrap.servers"] == "kafka:9092"
        assert result["compression.type"] == "gzip"
        assert result["message.max.bytes"] == 10_485_760
        assert "topic" not in result


class TestOutputConfig:
    """Tests for OutputConfig."""

    def test_default_values(self) -> None:
        config = OutputConfig()

        assert config.document_dir == Path("output/documents")
        assert config.json_output_dir == Path("output")
        assert config.pretty_json is False


class TestEngineConfig:
    """Tests for EngineConfig."""

    def test_default_values(self) -> None:
        config = EngineConfig()

        assert config.processing_fee_rate == Decimal("0.05")
        assert config.log_level == "INFO"
        assert config.seed is None

    def test_from_env_default(self, clean_env) -> None:
        config = EngineConfig.from_env()

        assert config.layout.page_size == "A4"
        assert config.watermark.text == "JLS FINANCE LTD"
        assert config.branding.currency_label == "Rs."
        assert config.kafka.bootstrap_servers == "localhost:9092"
        assert config.output.document_dir == Path("output/documents")
        assert config.processing_fee_rate == Decimal("0.05")
        assert config.seed is None

    def test_from_env_custom(self, clean_env) -> None:
        env_vars = {
            "LOAN_ENGINE_PAGE_SIZE": "LETTER",
            "LOAN_ENGINE_WATERMARK_TEXT": "DRAFT",
            "LOAN_ENGINE_WATERMARK_LAYER": "over",
            "LOAN_ENGINE_COMPANY_NAME": "Acme Credit",
            "LOAN_ENGINE_CURRENCY_LABEL": "INR",
            "KAFKA_BOOTSTRAP_SERVERS": "kafka-cluster:9092",
            "KAFKA_DOCUMENT_TOPIC": "prod.documents",
            "LOAN_ENGINE_DOCUMENT_DIR": "/data/pdf",
            "PRETTY_JSON": "true",
            "LOAN_ENGINE_PROCESSING_FEE_RATE": "0.02",
            "LOG_LEVEL": "DEBUG",
            "SEED": "12345",
        }

        with patch.dict(os.environ, env_vars):
            config = EngineConfig.from_env()

        assert config.layout.page_size == "LETTER"
        assert config.watermark.text == "DRAFT"
        assert config.watermark.layer == "over"
        assert config.branding.company_name == "Acme Credit"
        assert config.branding.currency_label == "INR"
        assert config.kafka.bootstrap_servers == "kafka-cluster:9092"
        assert config.kafka.topic == "prod.documents"
        assert config.output.document_dir == Path("/data/pdf")
        assert config.output.pretty_json is True
        assert config.processing_fee_rate == Decimal("0.02")
        assert config.log_level == "DEBUG"
        assert config.seed == 12345

    def test_from_env_bad_page_size(self, clean_env) -> None:
        with patch.dict(os.environ, {"LOAN_ENGINE_PAGE_SIZE": "POSTCARD"}):
            with pytest.raises(ConfigurationError):
                EngineConfig.from_env()

    def test_from_env_bad_fee_rate(self, clean_env) -> None:
        with patch.dict(os.environ, {"LOAN_ENGINE_PROCESSING_FEE_RATE": "five"}):
            with pytest.raises(ConfigurationError) as exc_info:
                EngineConfig.from_env()

        assert exc_info.value.context["processing_fee_rate"] == "five"


class TestSetupLogging:
    """Tests for setup_logging function."""

    def test_setup_logging_default(self) -> None:
        setup_logging()

        assert logging.getLogger("loan_engine").level == logging.INFO

    def test_setup_logging_debug(self) -> None:
        setup_logging(level="DEBUG")

        assert logging.getLogger().level == logging.DEBUG

    def test_setup_logging_invalid_level(self) -> None:
        """Test logging with invalid level defaults to INFO."""
        setup_logging(level="INVALID")

        assert logging.getLogger().level == logging.INFO

    def test_setup_logging_json_format(self) -> None:
        setup_logging(format_type="json")

        root = logging.getLogger()
        assert any(isinstance(h.formatter, JsonFormatter) for h in root.handlers)

    def test_setup_logging_replaces_handlers(self) -> None:
        root = logging.getLogger()
        root.addHandler(logging.StreamHandler())
        root.addHandler(logging.StreamHandler())

        setup_logging()

        assert len(root.handlers) == 1

    def test_external_loggers_quieted(self) -> None:
        setup_logging(level="DEBUG")

        assert logging.getLogger("confluent_kafka").level == logging.WARNING
        assert logging.getLogger("reportlab").level == logging.WARNING
        assert logging.getLogger("faker").level == logging.WARNING


class TestJsonFormatter:
    """Tests for JsonFormatter."""

    def _record(self, **kwargs) -> logging.LogRecord:
        return logging.LogRecord(
            name="loan_engine.service",
            level=logging.INFO,
            pathname="/path/to/file.py",
            lineno=42,
            msg="Generated %s",
            args=("agreement_L-1.pdf",),
            exc_info=kwargs.get("exc_info"),
        )

    def test_format_basic(self) -> None:
        data = json.loads(JsonFormatter().format(self._record()))

        assert data["level"] == "INFO"
        assert data["logger"] == "loan_engine.service"
        assert data["message"] == "Generated agreement_L-1.pdf"
        assert "timestamp" in data
        assert "error_type" not in data

    def test_format_with_extra(self) -> None:
        record = self._record()
        record.extra = {"loan_id": "L-1", "pages": 3, "amount": Decimal("10.50")}

        data = json.loads(JsonFormatter().format(record))

        assert data["loan_id"] == "L-1"
        assert data["pages"] == 3
        assert data["amount"] == "10.50"

    def test_format_with_exception(self) -> None:
        try:
            raise ValueError("Test error")
        except ValueError:
            exc_info = sys.exc_info()

        data = json.loads(JsonFormatter().format(self._record(exc_info=exc_info)))

        assert "ValueError: Test error" in data["exception"]
        assert "error_type" not in data

    def test_format_with_engine_error_context(self) -> None:
        """Test an engine error's context lands at the top level."""
        try:
            raise InvalidTopupSequence(
                "Top-up precedes disbursal",
                loan_id="L-1",
                topup_id="T-9",
                topup_date=date(2023, 12, 31),
            )
        except InvalidTopupSequence:
            exc_info = sys.exc_info()

        data = json.loads(JsonFormatter().format(self._record(exc_info=exc_info)))

        assert data["error_type"] == "InvalidTopupSequence"
        assert data["loan_id"] == "L-1"
        assert data["topup_id"] == "T-9"
        assert data["topup_date"] == "2023-12-31"

    def test_extra_overrides_error_context(self) -> None:
        try:
            raise MissingRequiredAsset("No photo", loan_id="L-1", kind="agreement")
        except MissingRequiredAsset:
            exc_info = sys.exc_info()
        record = self._record(exc_info=exc_info)
        record.extra = {"kind": "loan-card"}

        data = json.loads(JsonFormatter().format(record))

        assert data["loan_id"] == "L-1"
        assert data["kind"] == "loan-card"


class TestLoanContextFormatter:
    """Tests for the standard text formatter."""

    def _record(self, exc_info=None) -> logging.LogRecord:
        return logging.LogRecord(
            name="loan_engine.service",
            level=logging.WARNING,
            pathname="/path/to/file.py",
            lineno=7,
            msg="Skipped %s",
            args=("agreement",),
            exc_info=exc_info,
        )

    def test_plain_message(self) -> None:
        line = LoanContextFormatter().format(self._record())

        assert line.endswith("| WARNING  | loan_engine.service | Skipped agreement")

    def test_loan_keys_first(self) -> None:
        record = self._record()
        record.extra = {"pages": 2, "kind": "agreement", "loan_id": "L-1"}

        line = LoanContextFormatter().format(record)

        assert line.endswith("Skipped agreement | loan_id=L-1 kind=agreement pages=2")

    def test_error_context_before_traceback(self) -> None:
        try:
            raise InstallmentNotSettled("Not paid", loan_id="L-1", installment_number=4)
        except InstallmentNotSettled:
            exc_info = sys.exc_info()

        text = LoanContextFormatter().format(self._record(exc_info=exc_info))
        first, _, rest = text.partition("\n")

        assert first.endswith("Skipped agreement | loan_id=L-1 installment_number=4")
        assert "InstallmentNotSettled: Not paid" in rest

    def test_setup_uses_context_formatter(self) -> None:
        setup_logging()

        root = logging.getLogger()
        assert isinstance(root.handlers[0].formatter, LoanContextFormatter)
