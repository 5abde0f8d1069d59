"""Entrypoint for reconciling extracted credit memos against NetSuite."""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional, Sequence

from credit_reconciliation.models import ConfigurationError, CreditDocument
from credit_reconciliation.config import ConfigManager, ConfigurationValidator, ConnectionTester
from credit_reconciliation.connectors import ConnectorError, NetSuiteConnector
from credit_reconciliation.processor import CreditMemoProcessor

LOGGER = logging.getLogger(__name__)

DEFAULT_CONNECTION_ID = 'netsuite'
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def load_documents(path: Path) -> List[CreditDocument]:
    """
    Load extracted credit documents from a JSON file.

    The file holds one extraction record or a list of them; the file name
    labels every document that does not carry its own.
    """
    with open(path, "r", encoding="utf-8") as document_file:
        data = json.load(document_file)

    records = data if isinstance(data, list) else [data]
    return [CreditDocument.from_dict(record, file_name=record.get('fileName') or path.name)
            for record in records]


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="credit-reconcile", description=__doc__)
    parser.add_argument(
        "files",
        nargs="*",
        metavar="FILE",
        help="Extracted credit memo JSON files, processed in the order given",
    )
    parser.add_argument(
        "--output", "-o",
        metavar="REPORT_FILE",
        help="Write the JSON report to this file instead of standard output",
    )
    parser.add_argument(
        "--config-dir",
        help="Configuration directory (default: $CREDIT_RECON_CONFIG_DIR or ~/.credit_reconciliation/config)",
    )
    parser.add_argument(
        "--connection-id",
        default=DEFAULT_CONNECTION_ID,
        help=f"Stored NetSuite connection to use (default: {DEFAULT_CONNECTION_ID})",
    )
    parser.add_argument(
        "--stop-on-error",
        action="store_true",
        help="Stop the batch at the first document that raises an unexpected error",
    )
    parser.add_argument(
        "--test-connection",
        action="store_true",
        help="Test the stored connection and exit",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug logging",
    )
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO, format=LOG_FORMAT)

    config_manager = ConfigManager(config_dir=args.config_dir)
    connection_config = config_manager.load_connection_config(args.connection_id)
    if connection_config is None:
        LOGGER.error("Connection configuration '%s' not found in %s", args.connection_id, config_manager.config_dir)
        return 2

    if args.test_connection:
        result = ConnectionTester().test_netsuite_connection(connection_config)
        print(json.dumps(result.to_dict(), indent=2))
        return 0 if result.success else 1

    if not args.files:
        LOGGER.error("No credit memo files given")
        return 2

    try:
        settings = config_manager.load_settings()
    except ConfigurationError as e:
        LOGGER.error("%s", e)
        return 2

    validation = ConfigurationValidator().validate_settings(settings)
    for warning in validation.warnings:
        LOGGER.warning("Settings: %s", warning)
    if not validation.is_valid:
        for error in validation.errors:
            LOGGER.error("Settings: %s", error)
        return 2

    documents: List[CreditDocument] = []
    for file_name in args.files:
        path = Path(file_name)
        try:
            documents.extend(load_documents(path))
        except (OSError, ValueError) as e:
            LOGGER.error("Cannot read %s: %s", path, e)
            return 2
    LOGGER.info("Loaded %d document(s) from %d file(s)", len(documents), len(args.files))

    try:
        connector = NetSuiteConnector(connection_config)
    except ConnectorError as e:
        LOGGER.error("Cannot create NetSuite connector: %s", e)
        return 2

    processor = CreditMemoProcessor(connector, connector, settings)
    report = processor.process_batch(documents, stop_on_error=args.stop_on_error)

    report_json = json.dumps(report.to_dict(), indent=2)
    if args.output:
        Path(args.output).write_text(report_json + "\n", encoding="utf-8")
        LOGGER.info("Report written to %s", args.output)
    else:
        print(report_json)

    return 1 if report.documents_failed else 0


if __name__ == "__main__":
    sys.exit(main())
