"""
Unit tests for the metadata store service.
"""

import os
import pytest
from datetime import timedelta

from survey_analytics.config import settings


def test_cache_key():
    """Test get_cache_key generates the correct keys."""
    assert settings.get_cache_key("insights", "123") == f"{settings.PREFIX}_insights_123"
    assert settings.get_cache_key("insights", "123", "abc") == f"{settings.PREFIX}_insights_123_abc"


@pytest.mark.asyncio
async def test_store_and_get_analysis_result(metadata_store_instance, now):
    result = {"survey_id": "123", "patterns": [{"type": "correlation"}]}

    success = await metadata_store_instance.store_analysis_result("insights", "123", result, now=now)
    cached = await metadata_store_instance.get_analysis_result("insights", "123", now=now)

    assert success is True
    assert cached == result


@pytest.mark.asyncio
async def test_entries_expire_after_ttl(metadata_store_instance, now):
    await metadata_store_instance.store_analysis_result("overview", "123", {"value": 1}, ttl=60, now=now)

    assert await metadata_store_instance.get_analysis_result(
        "overview", "123", now=now + timedelta(seconds=59)
    ) == {"value": 1}
    assert await metadata_store_instance.get_analysis_result(
        "overview", "123", now=now + timedelta(seconds=60)
    ) is None


@pytest.mark.asyncio
async def test_default_ttl_comes_from_settings(metadata_store_instance, now):
    await metadata_store_instance.store_analysis_result("insights", "123", {"value": 1}, now=now)
    ttl = settings.CACHE_TTL["insights"]

    assert await metadata_store_instance.get_analysis_result(
        "insights", "123", now=now + timedelta(seconds=ttl - 1)
    ) is not None
    assert await metadata_store_instance.get_analysis_result(
        "insights", "123", now=now + timedelta(seconds=ttl)
    ) is None


@pytest.mark.asyncio
async def test_signatures_are_kept_apart(metadata_store_instance, now):
    await metadata_store_instance.store_analysis_result("insights", "123", {"days": 7}, signature="a", now=now)
    await metadata_store_instance.store_analysis_result("insights", "123", {"days": 30}, signature="b", now=now)

    assert await metadata_store_instance.get_analysis_result("insights", "123", "a", now=now) == {"days": 7}
    assert await metadata_store_instance.get_analysis_result("insights", "123", "b", now=now) == {"days": 30}
    assert await metadata_store_instance.get_analysis_result("insights", "123", now=now) is None


@pytest.mark.asyncio
async def test_invalidate(metadata_store_instance, now):
    await metadata_store_instance.store_analysis_result("insights", "123", {"value": 1}, now=now)

    assert await metadata_store_instance.invalidate("insights", "123") is True
    assert await metadata_store_instance.get_analysis_result("insights", "123", now=now) is None
    assert await metadata_store_instance.invalidate("insights", "123") is False


@pytest.mark.asyncio
async def test_corrupt_entry_reads_as_miss(metadata_store_instance, now):
    await metadata_store_instance.store_analysis_result("insights", "123", {"value": 1}, now=now)
    cache_dir = metadata_store_instance.analysis_dir
    for name in os.listdir(cache_dir):
        with open(os.path.join(cache_dir, name), "w") as f:
            f.write("{not json")

    assert await metadata_store_instance.get_analysis_result("insights", "123", now=now) is None


@pytest.mark.asyncio
async def test_unserializable_result_is_not_stored(metadata_store_instance, now):
    success = await metadata_store_instance.store_analysis_result("insights", "123", {"value": object()}, now=now)
    assert success is False
