"""Unit tests for the background description backfill."""

import json
from unittest.mock import AsyncMock

import pytest

from toolrpc_server.cache import InMemoryCacheProvider, NoOpCacheProvider
from toolrpc_server.ollama import DescriptionGenerationError
from toolrpc_server.services import DescriptionBackfillService
from toolrpc_server.tools import DescriptionSource, MethodToolBuilder, ToolRegistry
from toolrpc_server.tools.builder import fallback_description

MODEL = "test-model"

# Tools in the sample registry that start with a humanized fallback
FALLBACK_TOOLS = {"echo_payload", "fail_always", "slow_operation", "wait_for_cancel"}


@pytest.fixture
def cache():
    """Create an in-memory description cache."""
    cache = InMemoryCacheProvider()
    yield cache
    cache.close()


def make_service(registry, cache, generator=None):
    return DescriptionBackfillService(
        registry, MethodToolBuilder(), cache, provider_model=MODEL, generator=generator
    )


def make_registry_copy(registry):
    """Rebuild a registry with generated descriptions reset to fallbacks."""
    copy = ToolRegistry()
    for tool_method in registry:
        if tool_method.description_source is DescriptionSource.GENERATED:
            tool_method = tool_method.with_description(
                fallback_description(tool_method.name), DescriptionSource.FALLBACK
            )
        copy.register(tool_method)
    return copy


def fallback_names(registry):
    return {
        tool_method.name
        for tool_method in registry
        if tool_method.description_source is DescriptionSource.FALLBACK
    }


def test_sample_registry_fallbacks(sample_registry):
    """Test the starting state the backfill works on."""
    assert fallback_names(sample_registry) == FALLBACK_TOOLS


@pytest.mark.asyncio
async def test_cached_descriptions_replace_fallbacks(sample_registry, cache):
    """Test that cache hits refresh the registry and record usage."""
    cache.store(MODEL, "fail_always", "Raises an error with the given reason", 80)

    report = await make_service(sample_registry, cache).run()
    cache.flush()

    tool_method = sample_registry.get("fail_always")
    assert tool_method.tool.description == "Raises an error with the given reason"
    assert tool_method.description_source is DescriptionSource.CACHE
    assert report.examined == len(FALLBACK_TOOLS)
    assert report.from_cache == 1
    assert report.unresolved == len(FALLBACK_TOOLS) - 1
    assert cache.get(MODEL, "fail_always").usage_count == 1


@pytest.mark.asyncio
async def test_explicit_and_static_descriptions_are_untouched(sample_registry, cache):
    """Test that only fallback descriptions are backfilled."""
    cache.store(MODEL, "browse_web_and_return_text", "Cached browse", 1)
    cache.store(MODEL, "take_current_page_screenshot", "Cached screenshot", 1)

    await make_service(sample_registry, cache).run()

    assert (
        sample_registry.get("browse_web_and_return_text").tool.description
        == "Open a page and return its visible text"
    )
    assert (
        sample_registry.get("take_current_page_screenshot").description_source
        is DescriptionSource.STATIC
    )


@pytest.mark.asyncio
async def test_generator_fills_cache_misses(sample_registry, cache):
    """Test generation, storage and refresh on cache misses."""
    generator = AsyncMock()
    generator.generate_description.return_value = ("Echoes the payload back", 250)

    report = await make_service(sample_registry, cache, generator).run()

    assert report.generated == len(FALLBACK_TOOLS)
    tool_method = sample_registry.get("echo_payload")
    assert tool_method.tool.description == "Echoes the payload back"
    assert tool_method.description_source is DescriptionSource.GENERATED

    record = cache.get(MODEL, "echo_payload")
    assert record.description == "Echoes the payload back"
    assert record.generation_time_ms == 250
    assert set(json.loads(record.parameters_info)) == {"payload", "labels"}
    assert json.loads(record.tool_properties)["enabled"] is True

    model, tool_name, schema = generator.generate_description.await_args_list[0].args
    assert model == MODEL
    assert tool_name in FALLBACK_TOOLS
    assert schema["type"] == "object"


@pytest.mark.asyncio
async def test_generated_descriptions_are_reused_on_next_start(sample_registry, cache):
    """Test that a second run finds the generated descriptions in the cache."""
    generator = AsyncMock()
    generator.generate_description.return_value = ("Generated", 10)
    await make_service(sample_registry, cache, generator).run()

    fresh_registry = make_registry_copy(sample_registry)
    report = await make_service(fresh_registry, cache, generator).run()

    assert report.from_cache == len(FALLBACK_TOOLS)
    assert report.generated == 0
    assert generator.generate_description.await_count == len(FALLBACK_TOOLS)


@pytest.mark.asyncio
async def test_generator_failure_keeps_fallback(sample_registry, cache):
    """Test that generation failures leave the fallback in place."""
    generator = AsyncMock()
    generator.generate_description.side_effect = DescriptionGenerationError("model not found")

    report = await make_service(sample_registry, cache, generator).run()

    assert report.failed == len(FALLBACK_TOOLS)
    assert fallback_names(sample_registry) == FALLBACK_TOOLS
    assert cache.statistics().entries == 0


@pytest.mark.asyncio
async def test_disabled_cache_leaves_everything_unresolved(sample_registry):
    """Test backfill with the no-op provider."""
    report = await make_service(sample_registry, NoOpCacheProvider()).run()

    assert report.unresolved == len(FALLBACK_TOOLS)
    assert fallback_names(sample_registry) == FALLBACK_TOOLS


@pytest.mark.asyncio
async def test_start_schedules_task(sample_registry, cache):
    """Test that start() runs the backfill in the background."""
    cache.store(MODEL, "slow_operation", "Waits for a long time", 5)

    task = make_service(sample_registry, cache).start()
    report = await task

    assert report.from_cache == 1
    assert sample_registry.get("slow_operation").tool.description == "Waits for a long time"
