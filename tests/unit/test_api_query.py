"""Unit tests for the timeline, search and object endpoints."""

from __future__ import annotations

import typing as typ

import falcon
import falcon.testing
import pytest
from qdrant_client import AsyncQdrantClient

from ledgerline.api.app import AppDependencies, create_app
from ledgerline.search import SearchConfig
from ledgerline.vectors import HashingEmbeddingProvider, VectorStore, VectorStoreConfig
from ledgerline.vectors.sync import VectorSyncService
from ledgerline.webhooks import WebhookConfig, normalize
from tests.helpers.fakes import FakeVectorStore
from tests.helpers.github_payloads import (
    WEBHOOK_SECRET,
    issue_payload,
    pull_request_payload,
)

if typ.TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from ledgerline.events import EventStore

ISSUE_ID = "github:repo:octo/widgets:issue:1"
PR_ID = "github:repo:octo/widgets:pull_request:42"


def _conductor(
    session_factory: async_sessionmaker[AsyncSession],
    vector_store: FakeVectorStore | VectorStore | None = None,
) -> falcon.testing.ASGIConductor:
    deps = AppDependencies(
        session_factory=session_factory,
        webhook_config=WebhookConfig(secret=WEBHOOK_SECRET),
        search_config=SearchConfig(),
        vector_store=typ.cast("VectorStore | None", vector_store),
    )
    return falcon.testing.ASGIConductor(create_app(deps))


async def _seed(event_store: EventStore) -> None:
    await event_store.store_events(normalize("issues", issue_payload()))
    await event_store.store_events(
        normalize("issues", issue_payload(action="edited", title="Login page crashes on submit"))
    )
    await event_store.store_events(normalize("pull_request", pull_request_payload()))


class TestTimelineEndpoint:
    """``GET /api/timeline``."""

    @pytest.mark.asyncio
    async def test_lists_events_with_stats(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        event_store: EventStore,
    ) -> None:
        """The timeline lists every event and optional corpus stats."""
        await _seed(event_store)
        async with _conductor(session_factory) as conductor:
            result = await conductor.simulate_get(
                "/api/timeline", params={"stats": "true", "limit": "500"}
            )

        assert result.status == falcon.HTTP_200, "expected HTTP 200"
        assert result.json["pagination"] == {"limit": 100, "offset": 0, "count": 3}
        assert result.json["stats"]["totalEvents"] == 3
        assert result.json["stats"]["objectsByType"] == {"issue": 1, "pull_request": 1}
        issue_titles = {
            entry["title"]
            for entry in result.json["data"]
            if entry["objectId"] == ISSUE_ID
        }
        assert issue_titles == {"Login page crashes on submit"}, (
            "every issue event should show the current title"
        )

    @pytest.mark.asyncio
    async def test_filters_by_object_type(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        event_store: EventStore,
    ) -> None:
        """``objectType`` narrows the timeline."""
        await _seed(event_store)
        async with _conductor(session_factory) as conductor:
            result = await conductor.simulate_get(
                "/api/timeline", params={"objectType": "pull_request"}
            )
        assert [entry["objectId"] for entry in result.json["data"]] == [PR_ID]


class TestSearchEndpoints:
    """Lexical search and autocomplete."""

    @pytest.mark.asyncio
    async def test_lexical_search(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        event_store: EventStore,
    ) -> None:
        """Lexical search returns ranked matches with pagination."""
        await _seed(event_store)
        async with _conductor(session_factory) as conductor:
            result = await conductor.simulate_get(
                "/api/search", params={"q": "login", "repository": "octo/widgets"}
            )

        assert result.status == falcon.HTTP_200, "expected HTTP 200"
        assert result.json["query"] == "login"
        assert [hit["objectId"] for hit in result.json["data"]] == [ISSUE_ID]
        assert result.json["pagination"]["count"] == 1

    @pytest.mark.asyncio
    async def test_autocomplete(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        event_store: EventStore,
    ) -> None:
        """Autocomplete suggests matching titles."""
        await _seed(event_store)
        async with _conductor(session_factory) as conductor:
            result = await conductor.simulate_get(
                "/api/search/autocomplete", params={"q": "retry"}
            )
        assert result.json["data"] == ["Add retry budget"]


class TestVectorEndpoints:
    """Semantic and hybrid search with a canned vector store."""

    @pytest.mark.asyncio
    async def test_semantic_search_uses_default_threshold(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        """Semantic search applies the configured threshold and limit cap."""
        store = FakeVectorStore([PR_ID])
        async with _conductor(session_factory, store) as conductor:
            result = await conductor.simulate_get(
                "/api/search/semantic", params={"q": "retries", "limit": "500"}
            )

        assert result.status == falcon.HTTP_200, "expected HTTP 200"
        assert [hit["objectId"] for hit in result.json["data"]] == [PR_ID]
        (call,) = store.calls
        assert call["limit"] == 50
        assert call["score_threshold"] == pytest.approx(0.35)

    @pytest.mark.asyncio
    async def test_hybrid_search_clamps_limit(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        event_store: EventStore,
    ) -> None:
        """A huge hybrid limit is clamped to 50."""
        await _seed(event_store)
        store = FakeVectorStore([PR_ID])
        async with _conductor(session_factory, store) as conductor:
            result = await conductor.simulate_get(
                "/api/search/hybrid",
                params={"q": "login", "limit": "1000", "stats": "true"},
            )

        assert result.status == falcon.HTTP_200, "expected HTTP 200"
        assert result.json["pagination"]["limit"] == 50
        assert result.json["pagination"]["total"] == 2
        assert {hit["matchType"] for hit in result.json["data"]} == {
            "keyword",
            "semantic",
        }
        assert result.json["stats"]["keywordCandidates"] == 1

    @pytest.mark.asyncio
    async def test_ready_reports_vector_search(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        """/ready reports vector search when a store is configured."""
        async with _conductor(session_factory, FakeVectorStore()) as conductor:
            result = await conductor.simulate_get("/ready")
        assert result.json["vectorSearch"] == "connected"


class TestObjectEndpoint:
    """``GET /api/objects/{object_id}``."""

    @pytest.mark.asyncio
    async def test_unknown_object(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        """Unknown ids answer 404 with the id echoed back."""
        async with _conductor(session_factory) as conductor:
            result = await conductor.simulate_get(f"/api/objects/{ISSUE_ID}")
        assert result.status == falcon.HTTP_404, "expected HTTP 404"
        assert result.json["id"] == ISSUE_ID

    @pytest.mark.asyncio
    async def test_object_with_history(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        event_store: EventStore,
    ) -> None:
        """Objects are returned with their newest-first history on request."""
        await _seed(event_store)
        async with _conductor(session_factory) as conductor:
            plain = await conductor.simulate_get(f"/api/objects/{ISSUE_ID}")
            detailed = await conductor.simulate_get(
                f"/api/objects/{ISSUE_ID}", params={"history": "1", "historyLimit": "1"}
            )

        assert plain.status == falcon.HTTP_200, "expected HTTP 200"
        assert plain.json["data"]["title"] == "Login page crashes on submit"
        assert "history" not in plain.json
        assert [entry["action"] for entry in detailed.json["history"]] == ["edited"]


class TestVectorFilterCorrectness:
    """Type filters against a real Qdrant index."""

    @pytest.mark.asyncio
    async def test_object_type_filter_holds_for_every_result(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        event_store: EventStore,
    ) -> None:
        """Hybrid and semantic results all match ``objectType`` on mixed data."""
        await _seed(event_store)
        await event_store.store_events(
            normalize(
                "pull_request",
                pull_request_payload(number=7, title="Fix login crash on submit"),
            )
        )
        await event_store.store_events(
            normalize("issues", issue_payload(number=8, title="Login redirect loop"))
        )
        store = VectorStore(
            AsyncQdrantClient(location=":memory:"),
            HashingEmbeddingProvider(4096),
            VectorStoreConfig(url=":memory:", collection="filter_objects"),
        )
        stats = await VectorSyncService(event_store, store).sync_all()
        assert stats.synced == 4

        async with _conductor(session_factory, store) as conductor:
            hybrid = await conductor.simulate_get(
                "/api/search/hybrid",
                params={"q": "login crash", "objectType": "issue", "threshold": "0"},
            )
            semantic = await conductor.simulate_get(
                "/api/search/semantic",
                params={"q": "login crash", "objectType": "issue", "threshold": "0"},
            )

        assert hybrid.status == falcon.HTTP_200, "expected HTTP 200"
        assert semantic.status == falcon.HTTP_200, "expected HTTP 200"
        assert hybrid.json["data"], "expected issue matches"
        assert semantic.json["data"], "expected issue matches"
        assert {hit["objectType"] for hit in hybrid.json["data"]} == {"issue"}
        assert {hit["objectType"] for hit in semantic.json["data"]} == {"issue"}


class TestPopularTermsEndpoint:
    """``GET /api/search/popular``."""

    @pytest.mark.asyncio
    async def test_lists_terms_with_counts(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        event_store: EventStore,
    ) -> None:
        """Terms come back as ``term``/``count`` pairs, most common first."""
        await _seed(event_store)
        async with _conductor(session_factory) as conductor:
            result = await conductor.simulate_get(
                "/api/search/popular", params={"limit": "2"}
            )
        assert result.status == falcon.HTTP_200, "expected HTTP 200"
        assert result.json["data"] == [
            {"term": "budget", "count": 1},
            {"term": "crashes", "count": 1},
        ]
