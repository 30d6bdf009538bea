import pytest

from smart_lookup.models.search import ResultType, SearchFilter
from smart_lookup.services.collection_adapter import (
    Capability,
    CollectionAdapter,
    CollectionKind,
    OutcomeStatus,
)


@pytest.mark.asyncio
async def test_lookup_returns_records_tagged_with_collection(fake_collection, make_hit):
    collection = fake_collection(responses={"lookup": [make_hit("a.md", 0.9)]})
    adapter = CollectionAdapter(CollectionKind.SOURCES, collection)

    outcome = await adapter.lookup_by_hypothetical(["what is x"], SearchFilter(limit=5))

    assert outcome.status is OutcomeStatus.OK
    assert outcome.records == [make_hit("a.md", 0.9)]
    assert outcome.result_type is ResultType.SOURCE
    assert collection.calls == [("lookup", ["what is x"], {})]


@pytest.mark.asyncio
async def test_unsupported_capability_is_never_invoked(fake_collection):
    collection = fake_collection(capabilities=Capability.LOOKUP_BY_HYPOTHETICAL)
    adapter = CollectionAdapter(CollectionKind.BLOCKS, collection)

    outcome = await adapter.search_by_keyword(["alpha"], SearchFilter())

    assert outcome.status is OutcomeStatus.UNSUPPORTED
    assert outcome.records == []
    assert collection.calls == []


@pytest.mark.asyncio
async def test_backing_failure_becomes_failed_outcome(fake_collection):
    collection = fake_collection(responses={"search": RuntimeError("index offline")})
    adapter = CollectionAdapter(CollectionKind.BLOCKS, collection)

    outcome = await adapter.search_by_keyword(["alpha"], SearchFilter())

    assert outcome.failed
    assert outcome.records == []
    assert "index offline" in outcome.error


@pytest.mark.asyncio
async def test_non_list_result_is_treated_as_failure(fake_collection):
    collection = fake_collection(responses={"lookup": {"unexpected": True}})
    adapter = CollectionAdapter(CollectionKind.SOURCES, collection)

    outcome = await adapter.lookup_by_hypothetical(["q"], SearchFilter())

    assert outcome.failed
    assert outcome.records == []


@pytest.mark.asyncio
async def test_none_result_is_empty_success(fake_collection):
    collection = fake_collection(responses={"nearest": None})
    adapter = CollectionAdapter(CollectionKind.SOURCES, collection)

    outcome = await adapter.nearest_by_vector([0.1, 0.2], SearchFilter())

    assert outcome.ok
    assert outcome.records == []


@pytest.mark.asyncio
async def test_filter_prefixes_are_forwarded(fake_collection):
    collection = fake_collection()
    adapter = CollectionAdapter(CollectionKind.SOURCES, collection)
    search_filter = SearchFilter(
        limit=3,
        key_starts_with="projects/",
        exclude_key_starts_with="projects/archive",
        key_starts_with_any=["a/", "b/"],
    )

    await adapter.furthest_by_vector([1.0], search_filter)

    assert collection.calls == [
        (
            "furthest",
            [1.0],
            {
                "key_starts_with": "projects/",
                "exclude_key_starts_with": "projects/archive",
                "key_starts_with_any": ["a/", "b/"],
            },
        )
    ]


@pytest.mark.asyncio
async def test_resolve_requires_capability(fake_collection):
    entity = {"key": "a.md", "vec": [0.1]}
    supported = CollectionAdapter(CollectionKind.SOURCES, fake_collection(entities={"a.md": entity}))
    unsupported = CollectionAdapter(
        CollectionKind.SOURCES,
        fake_collection(capabilities=Capability.NEAREST_BY_VECTOR, entities={"a.md": entity}),
    )

    assert await supported.resolve("a.md") == entity
    assert await supported.resolve("missing.md") is None
    assert await unsupported.resolve("a.md") is None


def test_supports_reflects_capability_flags(fake_collection):
    adapter = CollectionAdapter(
        CollectionKind.BLOCKS,
        fake_collection(capabilities=Capability.NEAREST_BY_VECTOR | Capability.FURTHEST_BY_VECTOR),
    )

    assert adapter.supports(Capability.NEAREST_BY_VECTOR)
    assert adapter.supports(Capability.FURTHEST_BY_VECTOR)
    assert not adapter.supports(Capability.SEARCH_BY_KEYWORD)
