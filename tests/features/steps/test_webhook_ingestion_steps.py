"""Behavioural tests for signed webhook ingestion through the HTTP API."""

from __future__ import annotations

import asyncio
import typing as typ

import falcon.testing
import pytest
from pytest_bdd import given, parsers, scenarios, then, when
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from ledgerline.api.app import AppDependencies, create_app
from ledgerline.events import EventStore, init_event_storage
from ledgerline.search import SearchConfig
from ledgerline.webhooks import WebhookConfig
from tests.helpers.github_payloads import (
    encode,
    pull_request_payload,
    push_payload,
    signed_headers,
)

if typ.TYPE_CHECKING:
    from pathlib import Path

    import falcon.asgi
    from falcon.testing.client import Result

scenarios("../webhook_ingestion.feature")

WEBHOOK_PATH = "/webhooks/github"


class IngestionContext(typ.TypedDict, total=False):
    """Shared state used by BDD steps."""

    runner: asyncio.Runner
    session_factory: async_sessionmaker[AsyncSession]
    event_store: EventStore
    app: falcon.asgi.App
    body: bytes
    headers: dict[str, str]
    response: Result


@pytest.fixture
def ingestion_context(tmp_path: Path) -> typ.Iterator[IngestionContext]:
    """Provision a fresh database and event loop for each scenario."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'ingestion.db'}")
    with asyncio.Runner() as runner:
        runner.run(init_event_storage(engine))
        session_factory = async_sessionmaker(engine, expire_on_commit=False)
        yield {
            "runner": runner,
            "session_factory": session_factory,
            "event_store": EventStore(session_factory),
        }
        runner.run(engine.dispose())


def _post(context: IngestionContext) -> None:
    async def _send() -> Result:
        async with falcon.testing.ASGIConductor(context["app"]) as conductor:
            return await conductor.simulate_post(
                WEBHOOK_PATH, body=context["body"], headers=context["headers"]
            )

    context["response"] = context["runner"].run(_send())


@given(parsers.parse('a Ledgerline app configured with webhook secret "{secret}"'))
def app_with_secret(ingestion_context: IngestionContext, secret: str) -> None:
    """Build the full app around the scenario database."""
    ingestion_context["app"] = create_app(
        AppDependencies(
            session_factory=ingestion_context["session_factory"],
            webhook_config=WebhookConfig(secret=secret),
            search_config=SearchConfig(),
        )
    )


@when(
    parsers.parse(
        'a "{event_name}" delivery for pull request {number:d} titled "{title}" '
        'is signed with "{secret}"'
    )
)
def signed_pull_request(
    ingestion_context: IngestionContext,
    event_name: str,
    number: int,
    title: str,
    secret: str,
) -> None:
    """Sign and post a pull request delivery."""
    body = encode(pull_request_payload(number=number, title=title))
    ingestion_context["body"] = body
    ingestion_context["headers"] = signed_headers(body, secret, event_name)
    _post(ingestion_context)


@when("the same delivery arrives again")
def redeliver(ingestion_context: IngestionContext) -> None:
    """Post the previous body and headers unchanged."""
    _post(ingestion_context)


@when(parsers.parse("a signed push with {count:d} commits arrives"))
def signed_push(ingestion_context: IngestionContext, count: int) -> None:
    """Sign and post a push delivery carrying *count* commits."""
    commits = [(f"c0ffee{index}", f"Commit number {index}") for index in range(count)]
    body = encode(push_payload(commits))
    ingestion_context["body"] = body
    ingestion_context["headers"] = signed_headers(body, "test-webhook-secret", "push")
    _post(ingestion_context)


@then(parsers.parse("the delivery is answered with status {status:d}"))
def response_status(ingestion_context: IngestionContext, status: int) -> None:
    """Check the status of the last delivery."""
    response = ingestion_context["response"]
    assert response.status_code == status, (
        f"expected {status}, got {response.status_code}: {response.text}"
    )


@then(parsers.parse('the timeline for "{repository}" includes "{title}"'))
def timeline_includes(
    ingestion_context: IngestionContext, repository: str, title: str
) -> None:
    """Query the timeline endpoint and look for *title*."""

    async def _get() -> Result:
        async with falcon.testing.ASGIConductor(ingestion_context["app"]) as conductor:
            return await conductor.simulate_get(
                "/api/timeline", params={"repository": repository}
            )

    result = ingestion_context["runner"].run(_get())
    titles = [entry["title"] for entry in result.json["data"]]
    assert title in titles, f"{title!r} missing from timeline titles {titles!r}"


@then(parsers.parse('object "{object_id}" has {count:d} history entries'))
def history_entries(
    ingestion_context: IngestionContext, object_id: str, count: int
) -> None:
    """Count the event-log rows for *object_id*."""
    history = ingestion_context["runner"].run(
        ingestion_context["event_store"].get_event_history(object_id)
    )
    assert len(history) == count, f"expected {count} history entries"


@then(parsers.re(r"the event store holds (?P<count>\d+) canonical objects?"))
def object_count(ingestion_context: IngestionContext, count: str) -> None:
    """Count canonical objects."""
    total = ingestion_context["runner"].run(
        ingestion_context["event_store"].count_objects()
    )
    assert total == int(count), f"expected {count} canonical objects, got {total}"
