#!/usr/bin/env python3
"""Generate loan documents for a sample portfolio.

This script builds a seeded portfolio of customers and loans (with top-ups
and collection history), then renders for every loan:
- Loan agreement and loan card (when the customer's photo is available)
- A payment receipt for each paid installment

Documents go to a directory of PDFs, to Kafka, or both. Ledgers and the
monthly dues report are exported as JSON alongside.
"""

import argparse
import logging
import sys
from datetime import date
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from loan_engine.config import EngineConfig
from loan_engine.exceptions import LoanEngineError, MissingRequiredAsset
from loan_engine.logging import setup_logging
from loan_engine.models.document import ResolvedAssets
from loan_engine.models.enums import DocumentKind
from loan_engine.scenarios import LoanPortfolioScenario
from loan_engine.service import DocumentService
from loan_engine.sinks import FileDocumentSink, JsonFileSink, KafkaDocumentSink

logger = logging.getLogger(__name__)


class FanOutSink:
    """Forward each document to several sinks."""

    def __init__(self, sinks: list) -> None:
        self.sinks = sinks

    def write_document(self, document) -> None:
        for sink in self.sinks:
            sink.write_document(document)

    def close(self) -> None:
        for sink in self.sinks:
            sink.close()


def resolve_assets(photo_dir: Path | None, photo_ref: str | None) -> ResolvedAssets:
    """Load a customer's photo from ``photo_dir`` if it exists there."""
    if photo_dir is None or photo_ref is None:
        return ResolvedAssets()
    path = photo_dir / Path(photo_ref).name
    if not path.is_file():
        return ResolvedAssets()
    return ResolvedAssets.from_path(path)


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Generate loan documents for a sample portfolio")
    parser.add_argument(
        "--customers",
        type=int,
        default=10,
        help="Number of customers to generate (default: 10)",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Random seed for reproducibility (default: SEED env var)",
    )
    parser.add_argument(
        "--as-of",
        type=date.fromisoformat,
        default=date.today(),
        help="Servicing cut-off date, YYYY-MM-DD (default: today)",
    )
    parser.add_argument(
        "--photo-dir",
        type=Path,
        default=None,
        help="Directory of customer photos named <customer_id>.png",
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=None,
        help="Directory for PDFs (default: LOAN_ENGINE_DOCUMENT_DIR)",
    )
    parser.add_argument(
        "--page-size",
        type=str,
        choices=["A4", "A5", "LETTER", "LEGAL"],
        default=None,
        help="Page size (default: LOAN_ENGINE_PAGE_SIZE)",
    )
    parser.add_argument(
        "--kafka",
        action="store_true",
        help="Also publish documents to Kafka",
    )
    parser.add_argument(
        "--log-format",
        type=str,
        choices=["standard", "json"],
        default="standard",
        help="Log output format",
    )
    args = parser.parse_args()

    config = EngineConfig.from_env()
    setup_logging(config.log_level, args.log_format)
    seed = args.seed if args.seed is not None else config.seed

    logger.info("=" * 60)
    logger.info("Loan Document Generator")
    logger.info("=" * 60)
    logger.info("Customers: %d", args.customers)
    logger.info("Seed: %s", seed)
    logger.info("As of: %s", args.as_of.isoformat())

    store = LoanPortfolioScenario(
        num_customers=args.customers,
        as_of=args.as_of,
        seed=seed,
    ).generate()

    sinks = [FileDocumentSink(args.output_dir or config.output.document_dir)]
    if args.kafka:
        sinks.append(KafkaDocumentSink(config.kafka))
    sink = FanOutSink(sinks)

    service = DocumentService(store, config, sink)
    if args.page_size:
        service = service.with_layout(page_size=args.page_size)

    generated = 0
    skipped = 0
    try:
        for loan in store.loans.values():
            customer = store.get_customer(loan.customer_id)
            assets = resolve_assets(args.photo_dir, customer.photo_ref)
            for kind in (DocumentKind.AGREEMENT, DocumentKind.LOAN_CARD):
                try:
                    service.generate(kind, loan.loan_id, assets)
                    generated += 1
                except MissingRequiredAsset as e:
                    logger.warning("Skipped %s: %s", kind.value, e, extra={"extra": e.context})
                    skipped += 1
            for inst in store.get_schedule(loan.loan_id):
                if inst.is_paid:
                    service.generate(DocumentKind.RECEIPT, loan.loan_id, assets, inst.installment_number)
                    generated += 1
    except LoanEngineError as e:
        logger.error("Document generation failed: %s", e, exc_info=True)
        sys.exit(1)
    finally:
        sink.close()

    json_sink = JsonFileSink(config.output.json_output_dir, pretty=config.output.pretty_json)
    json_sink.write_batch(
        "installments",
        [inst for loan_id in store.loans for inst in store.get_schedule(loan_id)],
    )
    json_sink.write_batch("dues", store.dues_for_month(args.as_of.year, args.as_of.month))
    json_sink.close()

    logger.info("=" * 60)
    logger.info("Generated %d documents (%d skipped)", generated, skipped)
    for key, value in store.summary().items():
        logger.info("  %s: %d", key, value)
    logger.info("=" * 60)


if __name__ == "__main__":
    main()
