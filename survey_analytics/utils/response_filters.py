"""
Filters applied to response sets before analysis.
"""

from typing import List, Optional

from ..models import AnalyticsFilters, ResponseRecord

QUALITY_STATUSES = frozenset({"quality", "manually_overridden"})
LOW_QUALITY_STATUS = "low_quality"


def filter_by_quality(
    responses: List[ResponseRecord],
    include_quality: bool = True,
    include_low_quality: bool = False
) -> List[ResponseRecord]:
    """
    Select responses by their moderation status.

    Responses that were never classified count as quality responses.

    Args:
        responses: Response records
        include_quality: Keep quality (and unclassified) responses
        include_low_quality: Keep responses flagged as low quality

    Returns:
        The selected responses, in input order
    """
    if include_quality and include_low_quality:
        return list(responses)
    if include_quality:
        return [r for r in responses if r.quality_status is None or r.quality_status in QUALITY_STATUSES]
    if include_low_quality:
        return [r for r in responses if r.quality_status == LOW_QUALITY_STATUS]
    return []


def apply_filters(
    responses: List[ResponseRecord],
    filters: Optional[AnalyticsFilters] = None
) -> List[ResponseRecord]:
    """
    Apply caller-supplied filters to a response set.

    Missing device metadata matches the desktop class and the Unknown browser,
    the same defaults used by the device breakdown.
    """
    if filters is None:
        return list(responses)

    selected = filter_by_quality(responses, filters.include_quality, filters.include_low_quality)
    result = []

    for response in selected:
        if filters.start_date is not None and response.submitted_at < filters.start_date:
            continue
        if filters.end_date is not None and response.submitted_at > filters.end_date:
            continue

        device_type = response.device_info.type if response.device_info else "desktop"
        browser = response.device_info.browser if response.device_info else "Unknown"
        if filters.device_type is not None and device_type != filters.device_type:
            continue
        if filters.browser is not None and browser != filters.browser:
            continue

        if any(field not in response.demographics or str(response.demographics[field]) != str(value)
               for field, value in filters.demographics.items()):
            continue

        result.append(response)

    return result
