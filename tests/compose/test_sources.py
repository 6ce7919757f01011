"""Tests for source declarations, the registry and adapter invocation."""

import pytest

from docspine.adapters import MemoryAdapter, MemoryStore
from docspine.compose.sources import Multiplicity, SourceDeclaration, SourceRegistry, invoke
from docspine.core.errors import AdapterFailure, ConfigError, ErrorCategory, NotFoundError


class BrokenAdapter:
    """Adapter whose every operation fails."""

    def __init__(self, error: Exception) -> None:
        self.error = error

    async def fetch(self, match):
        raise self.error

    async def create(self, data):
        raise self.error

    async def update(self, match, data):
        raise self.error

    async def delete(self, match):
        raise self.error


@pytest.fixture
def adapter() -> MemoryAdapter:
    return MemoryAdapter(MemoryStore({"posts": [{"id": 1}]}), "posts")


class TestSourceDeclaration:
    def test_plain_adapter_is_one(self, adapter):
        declaration = SourceDeclaration.from_binding("post", adapter)
        assert declaration.multiplicity is Multiplicity.ONE
        assert not declaration.is_many

    def test_bracketed_adapter_is_many(self, adapter):
        declaration = SourceDeclaration.from_binding("posts", [adapter])
        assert declaration.is_many
        assert declaration.adapter is adapter

    def test_sequence_of_two_rejected(self, adapter):
        with pytest.raises(ConfigError):
            SourceDeclaration.from_binding("posts", [adapter, adapter])

    def test_non_adapter_rejected(self):
        with pytest.raises(ConfigError):
            SourceDeclaration.from_binding("posts", object())


class TestSourceRegistry:
    def test_declaration_and_ownership_order_differ(self, adapter):
        registry = SourceRegistry(
            [
                SourceDeclaration.from_binding("post", adapter),
                SourceDeclaration.from_binding("links", [adapter]),
                SourceDeclaration.from_binding("author", adapter),
            ],
            owned=["links", "post"],
        )
        assert registry.names == ["post", "links", "author"]
        assert registry.owned == ["links", "post"]
        assert registry.get("links").owned
        assert not registry.get("author").owned

    def test_bind_is_idempotent(self, adapter):
        registry = SourceRegistry([SourceDeclaration.from_binding("post", adapter)])
        registry.bind(["post"])
        registry.bind(["post"])
        assert registry.owned == ["post"]

    def test_duplicate_rejected(self, adapter):
        registry = SourceRegistry([SourceDeclaration.from_binding("post", adapter)])
        with pytest.raises(ConfigError):
            registry.add(SourceDeclaration.from_binding("post", adapter))

    def test_unknown_source(self, adapter):
        registry = SourceRegistry([SourceDeclaration.from_binding("post", adapter)])
        assert "author" not in registry
        with pytest.raises(ConfigError, match="Available: post"):
            registry.get("author")


class TestInvoke:
    @pytest.mark.asyncio
    async def test_passes_results_through(self, adapter):
        declaration = SourceDeclaration.from_binding("post", adapter)
        assert await invoke(declaration, "fetch", {"id": 1}) == [{"id": 1}]

    @pytest.mark.asyncio
    async def test_foreign_errors_become_adapter_failures(self):
        cause = ConnectionError("refused")
        declaration = SourceDeclaration.from_binding("post", BrokenAdapter(cause))

        with pytest.raises(AdapterFailure) as exc_info:
            await invoke(declaration, "update", {"id": 1}, {"title": "x"})

        err = exc_info.value
        assert err.cause is cause
        assert err.category == ErrorCategory.ADAPTER
        assert err.context.source_name == "post"
        assert err.context.operation == "update"

    @pytest.mark.asyncio
    async def test_docspine_errors_keep_their_type(self):
        declaration = SourceDeclaration.from_binding("post", BrokenAdapter(NotFoundError("gone")))

        with pytest.raises(NotFoundError) as exc_info:
            await invoke(declaration, "fetch", {"id": 1})
        assert exc_info.value.context.operation == "fetch"
