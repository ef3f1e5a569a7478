"""Unit tests for MethodToolBuilder and the @action/@agent decorators."""

import pytest

from toolrpc_server.cache import InMemoryCacheProvider
from toolrpc_server.tools import DescriptionSource, MethodToolBuilder, action, agent
from toolrpc_server.tools.actions import get_action_metadata, get_agent_metadata
from toolrpc_server.tools.builder import fallback_description, humanize
from toolrpc_server.tools.errors import DiscoveryError


@action(description="Read a page aloud", timeout_ms=5000, examples=["Read the news"])
def read_aloud(instructions: str) -> str:
    return instructions


@action()
def search_web(query: str) -> str:
    return query


@action()
def fetchPageData() -> str:
    return "data"


@action(name="renamed_tool")
def original_name() -> str:
    return "renamed"


def undecorated() -> str:
    return "plain"


@pytest.fixture
def builder():
    """Create a MethodToolBuilder with default static descriptions."""
    return MethodToolBuilder()


def test_action_records_metadata():
    """Test that @action stores its metadata on the function."""
    metadata = get_action_metadata(read_aloud)

    assert metadata is not None
    assert metadata.description == "Read a page aloud"
    assert metadata.timeout_ms == 5000
    assert metadata.examples == ("Read the news",)
    assert metadata.enabled is True


def test_action_rejects_non_positive_timeout():
    """Test that a zero or negative timeout is refused."""
    with pytest.raises(ValueError):
        action(timeout_ms=0)


def test_action_blank_name_and_description_are_ignored():
    """Test that whitespace-only strings fall back to defaults."""

    @action(name="  ", description="   ")
    def spaced() -> None:
        return None

    metadata = get_action_metadata(spaced)
    assert metadata.name is None
    assert metadata.description is None


def test_agent_metadata_on_class_and_instance():
    """Test that @agent metadata is found from the class and instances."""

    @agent(group="files", version="2.0.0", priority=3)
    class FileActions:
        pass

    assert get_agent_metadata(FileActions).group == "files"
    assert get_agent_metadata(FileActions()).version == "2.0.0"
    assert get_agent_metadata(undecorated) is None


def test_explicit_description_wins(builder):
    """Test that a decorator description has the highest precedence."""
    tool_method = builder.build(read_aloud)

    assert tool_method.tool.description == "Read a page aloud"
    assert tool_method.description_source is DescriptionSource.EXPLICIT


def test_static_description_table(builder):
    """Test that curated descriptions are used for known names."""
    tool_method = builder.build(search_web)

    assert tool_method.description_source is DescriptionSource.STATIC
    assert tool_method.tool.description == "Performs web searches and returns relevant results"


def test_configured_static_descriptions_override_defaults():
    """Test that configured descriptions extend and override the defaults."""
    builder = MethodToolBuilder(
        static_descriptions={"search_web": "Custom search", "fetchPageData": "Fetch data"}
    )

    assert builder.build(search_web).tool.description == "Custom search"
    assert builder.build(fetchPageData).description_source is DescriptionSource.STATIC


def test_static_descriptions_are_read_only(builder):
    """Test that the static table cannot be mutated after construction."""
    with pytest.raises(TypeError):
        builder.static_descriptions["search_web"] = "changed"  # type: ignore[index]


def test_fallback_description(builder):
    """Test the humanized fallback description."""
    tool_method = builder.build(fetchPageData)

    assert tool_method.description_source is DescriptionSource.FALLBACK
    assert tool_method.tool.description == "Tool for fetch page data"


def test_humanize():
    """Test converting identifiers into words."""
    assert humanize("browse_web_and_return_text") == "browse web and return text"
    assert humanize("takeScreenshot") == "take screenshot"
    assert fallback_description("search_web") == "Tool for search web"


def test_action_name_override(builder):
    """Test that @action(name=...) replaces the function name."""
    tool_method = builder.build(original_name)

    assert tool_method.name == "renamed_tool"


def test_missing_decorator_is_rejected(builder):
    """Test that only decorated callables can be built."""
    with pytest.raises(DiscoveryError, match="missing @action"):
        builder.build(undecorated)


def test_annotations_merge_agent_metadata(builder, web_actions):
    """Test that group metadata and tags end up in the annotations."""
    tool_method = builder.build(
        web_actions.search_pages,
        agent_metadata=get_agent_metadata(web_actions),
    )
    annotations = tool_method.tool.annotations

    assert annotations.group == "web"
    assert annotations.version == "1.2.0"
    assert annotations.priority == 5
    assert annotations.tags == ["search", "browser"]
    assert annotations.timeout_ms is None


def test_timeout_in_annotations(builder):
    """Test that timeout_ms and examples are published."""
    tool_method = builder.build(read_aloud)
    wire = tool_method.tool.to_wire()

    assert wire["annotations"]["timeoutMs"] == 5000
    assert wire["annotations"]["examples"] == ["Read the news"]
    assert tool_method.timeout_ms == 5000


def test_is_async(builder, utility_actions):
    """Test coroutine detection for handlers."""
    assert builder.build(utility_actions.slow_operation).is_async is True
    assert builder.build(utility_actions.fail_always).is_async is False


def test_with_description_keeps_name_and_schema(builder):
    """Test that refreshing a description leaves the rest untouched."""
    tool_method = builder.build(fetchPageData)
    updated = tool_method.with_description("Fetches page data", DescriptionSource.CACHE)

    assert updated.tool.description == "Fetches page data"
    assert updated.description_source is DescriptionSource.CACHE
    assert updated.name == tool_method.name
    assert updated.tool.input_schema == tool_method.tool.input_schema
    assert updated.handler is tool_method.handler
    # The original record is unchanged
    assert tool_method.tool.description == "Tool for fetch page data"


def test_resolve_description_uses_cache_for_fallback(builder):
    """Test that a cached description replaces the fallback on demand."""
    cache = InMemoryCacheProvider()
    cache.store("qwen3:14b", "fetchPageData", "Fetches data from a page", 120)
    tool_method = builder.build(fetchPageData)

    description, source = builder.resolve_description(tool_method, cache, "qwen3:14b")

    assert description == "Fetches data from a page"
    assert source is DescriptionSource.CACHE


def test_resolve_description_cache_miss(builder):
    """Test that a cache miss keeps the humanized fallback."""
    cache = InMemoryCacheProvider()
    tool_method = builder.build(fetchPageData)

    description, source = builder.resolve_description(tool_method, cache, "qwen3:14b")

    assert description == "Tool for fetch page data"
    assert source is DescriptionSource.FALLBACK
    assert cache.statistics().misses == 1


def test_resolve_description_never_overrides_explicit(builder):
    """Test that explicit descriptions skip the cache entirely."""
    cache = InMemoryCacheProvider()
    cache.store("qwen3:14b", "read_aloud", "Cached text", 10)
    tool_method = builder.build(read_aloud)

    description, source = builder.resolve_description(tool_method, cache, "qwen3:14b")

    assert description == "Read a page aloud"
    assert source is DescriptionSource.EXPLICIT
    stats = cache.statistics()
    assert stats.hits == 0
    assert stats.misses == 0
