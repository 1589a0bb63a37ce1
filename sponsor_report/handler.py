"""
Command-line entrypoint for the sponsor report

Reads configuration from the environment (or `.env`), runs one report and
exits non-zero on failure so schedulers such as GitHub Actions flag the run.
"""

import asyncio
import logging
import sys

from sponsor_report.config.settings import Settings
from sponsor_report.crawlers.client import sanitize_for_log
from sponsor_report.jobs.sponsor_sync import run_sponsor_report

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def main() -> int:
    """
    Run the sponsor report once.

    Returns:
        Process exit code: 0 on success, 1 on any failure
    """
    try:
        settings = Settings()
        if settings.DEBUG:
            logging.getLogger().setLevel(logging.DEBUG)
        result = asyncio.run(run_sponsor_report(settings))
    except Exception as e:
        logger.error(f"Sponsor report failed: {sanitize_for_log(str(e))}", exc_info=True)
        return 1

    logger.info(
        f"Sponsor report completed: {result['months']} months, "
        f"{result['sponsor_count']} sponsors, ${result['estimated_income_dollar']}/month"
    )
    return 0


# Allow local runs via `python -m sponsor_report.handler`
if __name__ == "__main__":
    sys.exit(main())
