"""
Main module for processing a survey and writing its insight bundle.
"""

import asyncio
import argparse
import json
import logging
from datetime import datetime, timezone
from typing import Dict, Any, Optional, Tuple
import os
import sys

from survey_analytics.config import settings
from survey_analytics.models import to_utc
from survey_analytics.utils.api_fetcher import api_fetcher
from survey_analytics.utils.data_transformers import data_transformer
from survey_analytics.analysis.insight_coordinator import insight_coordinator

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(sys.stdout)
    ]
)
logger = logging.getLogger(__name__)


async def process_survey(
    survey_data: Dict[str, Any],
    responses_data: Dict[str, Any],
    now: Optional[datetime] = None,
    days_ahead: int = settings.FORECAST_DEFAULT_DAYS_AHEAD,
    force_refresh: bool = False
) -> Dict[str, Any]:
    """
    Process survey data and responses into an insight bundle.

    Args:
        survey_data: Raw survey data from API
        responses_data: Raw response data from API
        now: Reference time, defaults to the current UTC time
        days_ahead: Forecast horizon in days
        force_refresh: Whether to skip cached results

    Returns:
        Insight bundle with the dashboard overview attached
    """
    logger.info("Starting survey analysis process")
    now = to_utc(now) if now else datetime.now(timezone.utc)

    survey = data_transformer.transform_survey_data(survey_data)
    responses = data_transformer.transform_responses(responses_data, survey.id)
    logger.info(f"Loaded survey {survey.id} with {len(survey.questions)} questions and {len(responses)} responses")

    results = await insight_coordinator.generate_insights(
        survey,
        responses,
        now,
        days_ahead=days_ahead,
        force_refresh=force_refresh
    )
    results["overview"] = insight_coordinator.build_overview(survey, responses, now)

    logger.info("Analysis complete")
    return results


def load_from_directory(input_dir: str, survey_id: str) -> Tuple[Dict[str, Any], Dict[str, Any]]:
    """
    Load raw survey and response JSON exported to a directory.

    Expects survey_<id>.json and responses_<id>.json inside input_dir.
    """
    survey_file = os.path.join(input_dir, f"survey_{survey_id}.json")
    responses_file = os.path.join(input_dir, f"responses_{survey_id}.json")

    logger.info(f"Loading survey data from {survey_file}")
    with open(survey_file, 'r') as f:
        survey_data = json.load(f)

    logger.info(f"Loading responses data from {responses_file}")
    with open(responses_file, 'r') as f:
        responses_data = json.load(f)

    return survey_data, responses_data


async def load_from_api(survey_id: str) -> Tuple[Dict[str, Any], Dict[str, Any]]:
    """Fetch raw survey and response JSON from the survey API."""
    survey_data = await api_fetcher.fetch_survey(survey_id)
    responses_data = await api_fetcher.fetch_all_responses(survey_id)
    return survey_data, responses_data


async def run(
    survey_id: str,
    input_dir: Optional[str] = None,
    output_file: Optional[str] = None,
    days_ahead: int = settings.FORECAST_DEFAULT_DAYS_AHEAD,
    force_refresh: bool = False
) -> Dict[str, Any]:
    """
    Load a survey, analyze it and optionally write the results.

    Args:
        survey_id: ID of the survey to process
        input_dir: Directory with exported JSON files; the API is used when omitted
        output_file: Optional path to write results to
        days_ahead: Forecast horizon in days
        force_refresh: Whether to skip cached results
    """
    if input_dir:
        survey_data, responses_data = load_from_directory(input_dir, survey_id)
    else:
        survey_data, responses_data = await load_from_api(survey_id)

    results = await process_survey(
        survey_data,
        responses_data,
        days_ahead=days_ahead,
        force_refresh=force_refresh
    )

    if output_file:
        logger.info(f"Writing results to {output_file}")
        with open(output_file, 'w') as f:
            json.dump(results, f, indent=2)

    return results


def main():
    """Main entry point for the script."""
    parser = argparse.ArgumentParser(description='Generate analytics insights for a survey.')
    parser.add_argument('--survey-id', required=True, help='ID of the survey to analyze')
    parser.add_argument('--days-ahead', type=int, default=settings.FORECAST_DEFAULT_DAYS_AHEAD,
                        help='Number of days to forecast (1-90)')
    parser.add_argument('--input-dir', help='Read survey_<id>.json and responses_<id>.json from this directory')
    parser.add_argument('--output', help='Path to write results to (default: insights_<id>.json)')
    parser.add_argument('--force-refresh', action='store_true', help='Ignore cached results')

    args = parser.parse_args()

    # Set default output file if not specified
    output_file = args.output or f'insights_{args.survey_id}.json'

    # Run the async process
    asyncio.run(run(args.survey_id, args.input_dir, output_file, args.days_ahead, args.force_refresh))
    logger.info(f"Results written to {output_file}")


if __name__ == "__main__":
    main()
