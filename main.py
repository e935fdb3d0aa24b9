"""
Main driver script for the invoice PDF matcher.
Loads path settings and due-date groups, then copies the matched PDFs into the daily folders.
"""

import boto3
import json
import logging
import sys
import os
from datetime import datetime
from matching_modules.batch import BatchCoordinator
from matching_modules.formatters import MarkdownFormatter
from matching_modules.models import InvalidBatchError
from matching_modules.settings import PathSettings, detect_base_path, detect_drives, load_settings
from matching_modules.sources import S3Source

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - [%(funcName)s] - %(message)s',
    handlers=[
        logging.FileHandler(f'invoice_matching_{datetime.now().strftime("%Y%m%d_%H%M%S")}.log'),
        logging.StreamHandler(sys.stdout)
    ]
)
logger = logging.getLogger(__name__)


def main():
    """
    Main execution function:
    - Loads path settings and the due-date groups file
    - Optionally points the search at an S3 prefix instead of the year folders
    - Runs the batch and writes the markdown and JSON reports
    """

    # Configuration
    SETTINGS_PATH = "config.json"
    GROUPS_PATH = "groups.json"
    OUTPUT_DIR = "matching_output"
    S3_BUCKET_NAME = None  # e.g. "invoice-archive-bucket" to search S3 instead of the network share
    S3_PREFIX = "invoices/"
    AWS_REGION = "us-east-1"

    if not os.path.exists(GROUPS_PATH):
        logger.warning(f"Groups file '{GROUPS_PATH}' not found!")
        logger.warning('Expected format: [{"due_date": "YYYY-MM-DD", "identifiers": ["..."]}]')
        return

    with open(GROUPS_PATH, 'r', encoding='utf-8') as f:
        groups = json.load(f)

    if os.path.exists(SETTINGS_PATH):
        settings = load_settings(SETTINGS_PATH)
    else:
        logger.info(f"Drives available: {', '.join(detect_drives()) or 'none'}")
        settings = PathSettings.defaults()
        detected = detect_base_path()
        if detected:
            settings = settings.model_copy(update={"base_path": detected})
    logger.info(f"Base path: {settings.base_path}")

    source = None
    if S3_BUCKET_NAME:
        source = S3Source(boto3.client('s3', region_name=AWS_REGION), S3_BUCKET_NAME, S3_PREFIX)
        logger.info(f"Searching S3 prefix: {source.key}")

    coordinator = BatchCoordinator(settings, source=source)

    try:
        report = coordinator.run(groups)
    except InvalidBatchError as e:
        logger.error(f"Invalid groups file: {e}")
        return

    os.makedirs(OUTPUT_DIR, exist_ok=True)

    summary_path = os.path.join(OUTPUT_DIR, "SUMMARY_REPORT.md")
    with open(summary_path, 'w', encoding='utf-8') as f:
        f.write(MarkdownFormatter.format_batch_report(report))

    json_path = os.path.join(OUTPUT_DIR, "report.json")
    with open(json_path, 'w', encoding='utf-8') as f:
        json.dump(report.to_dict(), f, indent=2, ensure_ascii=False)

    logger.info("=" * 50)
    logger.info(f"Copied: {report.summary.total_copied}")
    logger.info(f"Not found: {report.summary.total_not_found}")
    logger.info(f"Ignored: {report.summary.total_ignored}")
    logger.info(f"Errors: {report.summary.total_errors}")
    logger.info(f"Summary report saved to: {summary_path}")
    logger.info("=" * 50)


if __name__ == "__main__":
    main()
