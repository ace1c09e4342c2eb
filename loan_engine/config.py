"""Configuration management for loan-engine."""

from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path
from typing import Any

from reportlab.lib import pagesizes

from loan_engine.exceptions import ConfigurationError

PAGE_SIZES: dict[str, tuple[float, float]] = {
    "A4": pagesizes.A4,
    "A5": pagesizes.A5,
    "LETTER": pagesizes.LETTER,
    "LEGAL": pagesizes.LEGAL,
}

DEFAULT_TERMS = (
    "The borrower agrees to repay the loan amount with interest as per the EMI schedule.",
    "Late payment will attract a penalty fee of {penalty_rate}% per month on the overdue amount.",
    "All disputes are subject to the jurisdiction of the {jurisdiction} courts.",
)


def resolve_page_size(name: str) -> tuple[float, float]:
    """Return ``(width, height)`` in points for a named page size."""
    try:
        return PAGE_SIZES[name.upper()]
    except KeyError:
        raise ConfigurationError(
            f"Unknown page size {name!r}; expected one of {sorted(PAGE_SIZES)}",
            page_size=name,
        ) from None


@dataclass
class LayoutConfig:
    """Page geometry and typography used by the paginated renderer.

    All lengths are PDF points (1/72 inch).
    """

    page_size: str = "A4"
    margin_top: float = 56.0
    margin_bottom: float = 56.0
    margin_left: float = 56.0
    margin_right: float = 56.0
    font: str = "Helvetica"
    bold_font: str = "Helvetica-Bold"
    title_size: float = 20.0
    subtitle_size: float = 14.0
    heading_size: float = 12.0
    body_size: float = 10.0
    table_size: float = 8.0
    line_height: float = 14.0
    row_height: float = 16.0
    block_spacing: float = 14.0
    photo_size: float = 96.0
    footer_size: float = 8.0

    @property
    def dimensions(self) -> tuple[float, float]:
        """Page width and height in points."""
        return resolve_page_size(self.page_size)

    @property
    def content_width(self) -> float:
        """Usable width between the left and right margins."""
        width, _ = self.dimensions
        return width - self.margin_left - self.margin_right


@dataclass
class WatermarkConfig:
    """Diagonal mark stamped on every rendered page."""

    text: str = "JLS FINANCE LTD"
    angle: float = 45.0
    font: str = "Helvetica-Bold"
    font_size: float = 50.0
    gray: float = 0.86
    layer: str = "under"  # "under" or "over" the page content

    def __post_init__(self) -> None:
        if self.layer not in ("under", "over"):
            raise ConfigurationError(
                f"Watermark layer must be 'under' or 'over', got {self.layer!r}",
                layer=self.layer,
            )


@dataclass
class BrandingConfig:
    """Lender identity and boilerplate printed on documents."""

    company_name: str = "JLS Finance Ltd"
    currency_label: str = "Rs."
    penalty_rate: Decimal = Decimal("2")
    jurisdiction: str = "Anytown"
    terms: tuple[str, ...] = DEFAULT_TERMS

    def rendered_terms(self) -> list[str]:
        """Terms with penalty rate and jurisdiction filled in."""
        return [
            term.format(penalty_rate=self.penalty_rate, jurisdiction=self.jurisdiction)
            for term in self.terms
        ]


@dataclass
class KafkaConfig:
    """Kafka producer configuration for the document sink."""

    bootstrap_servers: str = "localhost:9092"
    topic: str = "loans.documents"
    acks: str = "all"
    linger_ms: int = 5
    compression: str = "snappy"
    retries: int = 3
    # Rendered PDFs are much larger than the broker default of 1 MB
    message_max_bytes: int = 10_485_760

    def to_dict(self) -> dict[str, Any]:
        """Convert to confluent-kafka config dict."""
        return {
            "bootstrap.servers": self.bootstrap_servers,
            "acks": self.acks,
            "linger.ms": self.linger_ms,
            "compression.type": self.compression,
            "retries": self.retries,
            "message.max.bytes": self.message_max_bytes,
        }


@dataclass
class OutputConfig:
    """Output configuration."""

    document_dir: Path = field(default_factory=lambda: Path("output/documents"))
    json_output_dir: Path = field(default_factory=lambda: Path("output"))
    pretty_json: bool = False


@dataclass
class EngineConfig:
    """Main configuration for loan-engine."""

    layout: LayoutConfig = field(default_factory=LayoutConfig)
    watermark: WatermarkConfig = field(default_factory=WatermarkConfig)
    branding: BrandingConfig = field(default_factory=BrandingConfig)
    kafka: KafkaConfig = field(default_factory=KafkaConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    processing_fee_rate: Decimal = Decimal("0.05")
    log_level: str = "INFO"
    seed: int | None = None

    @classmethod
    def from_env(cls) -> "EngineConfig":
        """Create config from environment variables."""
        import os

        layout = LayoutConfig(
            page_size=os.getenv("LOAN_ENGINE_PAGE_SIZE", "A4"),
        )
        # Fail early on a typo instead of at the first render
        resolve_page_size(layout.page_size)

        watermark = WatermarkConfig(
            text=os.getenv("LOAN_ENGINE_WATERMARK_TEXT", "JLS FINANCE LTD"),
            layer=os.getenv("LOAN_ENGINE_WATERMARK_LAYER", "under"),
        )

        branding = BrandingConfig(
            company_name=os.getenv("LOAN_ENGINE_COMPANY_NAME", "JLS Finance Ltd"),
            currency_label=os.getenv("LOAN_ENGINE_CURRENCY_LABEL", "Rs."),
            jurisdiction=os.getenv("LOAN_ENGINE_JURISDICTION", "Anytown"),
        )

        kafka = KafkaConfig(
            bootstrap_servers=os.getenv("KAFKA_BOOTSTRAP_SERVERS", "localhost:9092"),
            topic=os.getenv("KAFKA_DOCUMENT_TOPIC", "loans.documents"),
            acks=os.getenv("KAFKA_ACKS", "all"),
        )

        output = OutputConfig(
            document_dir=Path(os.getenv("LOAN_ENGINE_DOCUMENT_DIR", "output/documents")),
            json_output_dir=Path(os.getenv("OUTPUT_DIR", "output")),
            pretty_json=os.getenv("PRETTY_JSON", "false").lower() == "true",
        )

        fee_rate = os.getenv("LOAN_ENGINE_PROCESSING_FEE_RATE", "0.05")
        try:
            processing_fee_rate = Decimal(fee_rate)
        except ArithmeticError:
            raise ConfigurationError(
                f"Invalid processing fee rate {fee_rate!r}", processing_fee_rate=fee_rate
            ) from None

        return cls(
            layout=layout,
            watermark=watermark,
            branding=branding,
            kafka=kafka,
            output=output,
            processing_fee_rate=processing_fee_rate,
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            seed=int(os.getenv("SEED")) if os.getenv("SEED") else None,
        )
