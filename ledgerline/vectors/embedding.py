"""Embedding providers and the text blob embedded for each canonical object."""

from __future__ import annotations

import hashlib
import json
import math
import typing as typ

import httpx

from ledgerline.logging import format_fields, get_logger, log_debug
from ledgerline.search.text import analyze
from ledgerline.vectors.errors import (
    EmbeddingAPIError,
    EmbeddingConfigError,
    EmbeddingResponseShapeError,
)

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from ledgerline.events.models import CanonicalObjectView
    from ledgerline.vectors.config import OpenAIEmbeddingConfig

__all__ = [
    "EmbeddingProvider",
    "HashingEmbeddingProvider",
    "OpenAIEmbeddingProvider",
    "prepare_for_embedding",
]

logger = get_logger(__name__)

BODY_PREVIEW_LIMIT = 1000

_HTTP_ERROR_STATUS_THRESHOLD = 400
_HTTP_RATE_LIMITED = 429


@typ.runtime_checkable
class EmbeddingProvider(typ.Protocol):
    """Turns text into fixed-size vectors."""

    @property
    def dimensions(self) -> int:
        """Return the vector size produced by this provider."""
        ...

    async def embed(self, text: str) -> list[float]:
        """Return the embedding for *text*."""
        ...

    async def embed_batch(self, texts: cabc.Sequence[str]) -> list[list[float]]:
        """Return embeddings for *texts* in input order."""
        ...

    async def aclose(self) -> None:
        """Release any held resources."""
        ...


def prepare_for_embedding(obj: CanonicalObjectView) -> str:
    """Build the compact text blob embedded for *obj*.

    Bodies longer than 1000 characters are truncated, so the tail of very
    long descriptions does not influence semantic search.

    Examples
    --------
    Output for a merged pull request::

        Type: pull_request
        Repository: octo/widgets
        Title: Add retry budget
        Description: Limits retries per request.
        Created by: octocat
        State: closed
        Last action: merged
        Branch: feature/retries
        Status: merged

    """
    properties = obj.properties
    parts = [f"Type: {obj.object_type}"]
    repository = properties.get("repository") or obj.repository
    if repository:
        parts.append(f"Repository: {repository}")
    if obj.title:
        parts.append(f"Title: {obj.title}")
    if obj.body:
        body = obj.body
        if len(body) > BODY_PREVIEW_LIMIT:
            body = f"{body[:BODY_PREVIEW_LIMIT]}..."
        parts.append(f"Description: {body}")
    if obj.created_by:
        parts.append(f"Created by: {obj.created_by}")
    if properties.get("state"):
        parts.append(f"State: {properties['state']}")
    if properties.get("lastAction"):
        parts.append(f"Last action: {properties['lastAction']}")
    if obj.object_type == "pull_request":
        if properties.get("headRef"):
            parts.append(f"Branch: {properties['headRef']}")
        if properties.get("merged"):
            parts.append("Status: merged")
    if obj.object_type == "commit" and obj.title:
        parts.append(f"Commit message: {obj.title}")
    return "\n".join(parts)


def _l2_normalize(vector: list[float]) -> list[float]:
    norm = math.sqrt(sum(value * value for value in vector))
    if norm == 0:
        return vector
    return [value / norm for value in vector]


class HashingEmbeddingProvider:
    """Deterministic feature-hashing embedder.

    Each analyzed token (and each adjacent token pair) is hashed into one
    signed bucket; the result is L2-normalized. Texts sharing vocabulary get
    high cosine similarity, which is enough for local runs and tests without
    an external API.
    """

    def __init__(self, dimensions: int = 256) -> None:
        """Set the number of hash buckets."""
        if dimensions < 1:
            msg = f"dimensions must be >= 1, got {dimensions}"
            raise ValueError(msg)
        self._dimensions = dimensions

    @property
    def dimensions(self) -> int:
        """Return the vector size."""
        return self._dimensions

    def _vectorize(self, text: str) -> list[float]:
        vector = [0.0] * self._dimensions
        tokens = analyze(text)
        features = tokens + [f"{a} {b}" for a, b in zip(tokens, tokens[1:], strict=False)]
        for feature in features:
            digest = hashlib.blake2b(feature.encode("utf-8"), digest_size=8).digest()
            value = int.from_bytes(digest, "big")
            sign = 1.0 if value & 1 else -1.0
            vector[(value >> 1) % self._dimensions] += sign
        return _l2_normalize(vector)

    async def embed(self, text: str) -> list[float]:
        """Return the hashed embedding for *text*."""
        return self._vectorize(text)

    async def embed_batch(self, texts: cabc.Sequence[str]) -> list[list[float]]:
        """Return hashed embeddings for *texts*."""
        return [self._vectorize(text) for text in texts]

    async def aclose(self) -> None:
        """Nothing to release."""


def _get_retry_after(response: httpx.Response) -> int | None:
    retry_after = response.headers.get("Retry-After")
    if retry_after and retry_after.isdigit():
        return int(retry_after)
    return None


class OpenAIEmbeddingProvider:
    """Client for an OpenAI-compatible ``/v1/embeddings`` endpoint.

    Parameters
    ----------
    config
        Endpoint, model and batching settings.
    http_client
        Optional ``httpx.AsyncClient`` for testing. If not provided, the
        instance creates and owns its own client.

    """

    def __init__(
        self,
        config: OpenAIEmbeddingConfig,
        *,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialise the client with configuration."""
        if not config.api_key.strip():
            raise EmbeddingConfigError.empty_api_key()

        self._config = config
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            timeout=config.timeout_s,
            headers={
                "Authorization": f"Bearer {config.api_key}",
                "Content-Type": "application/json",
            },
        )

    @property
    def config(self) -> OpenAIEmbeddingConfig:
        """Read-only access to the client configuration."""
        return self._config

    @property
    def dimensions(self) -> int:
        """Return the configured vector size."""
        return self._config.dimensions

    async def aclose(self) -> None:
        """Close any owned HTTP resources."""
        if self._owns_client:
            await self._client.aclose()

    async def embed(self, text: str) -> list[float]:
        """Return the embedding for *text*.

        Raises
        ------
        EmbeddingAPIError
            If the request fails, times out or returns an error status.
        EmbeddingResponseShapeError
            If the response is malformed.

        """
        (vector,) = await self._request([text])
        return vector

    async def embed_batch(self, texts: cabc.Sequence[str]) -> list[list[float]]:
        """Return embeddings for *texts*, chunked by ``batch_size``."""
        vectors: list[list[float]] = []
        size = self._config.batch_size
        for start in range(0, len(texts), size):
            vectors.extend(await self._request(list(texts[start : start + size])))
        return vectors

    async def _request(self, texts: list[str]) -> list[list[float]]:
        payload: dict[str, object] = {"model": self._config.model, "input": texts}
        try:
            response = await self._client.post(self._config.endpoint, json=payload)
        except httpx.TimeoutException as exc:
            raise EmbeddingAPIError.timeout() from exc
        except httpx.RequestError as exc:
            raise EmbeddingAPIError.network_error(str(exc)) from exc

        if response.status_code == _HTTP_RATE_LIMITED:
            raise EmbeddingAPIError.rate_limited(_get_retry_after(response))
        if response.status_code >= _HTTP_ERROR_STATUS_THRESHOLD:
            raise EmbeddingAPIError.http_error(response.status_code)

        vectors = self._parse_response(response, expected=len(texts))
        log_debug(
            logger,
            "Embedded batch %s",
            format_fields(model=self._config.model, inputs=len(texts)),
        )
        return vectors

    def _parse_response(
        self, response: httpx.Response, *, expected: int
    ) -> list[list[float]]:
        try:
            data = response.json()
        except json.JSONDecodeError as exc:
            raise EmbeddingResponseShapeError.missing("data") from exc

        items = data.get("data") if isinstance(data, dict) else None
        if not isinstance(items, list):
            raise EmbeddingResponseShapeError.missing("data")
        if len(items) != expected:
            raise EmbeddingResponseShapeError.count_mismatch(expected, len(items))

        ordered: list[list[float] | None] = [None] * expected
        for position, item in enumerate(items):
            if not isinstance(item, dict) or not isinstance(item.get("embedding"), list):
                raise EmbeddingResponseShapeError.missing(f"data[{position}].embedding")
            index = item.get("index", position)
            if not isinstance(index, int) or not 0 <= index < expected:
                raise EmbeddingResponseShapeError.missing(f"data[{position}].index")
            vector = [float(value) for value in item["embedding"]]
            if len(vector) != self._config.dimensions:
                raise EmbeddingResponseShapeError.wrong_dimensions(
                    self._config.dimensions, len(vector)
                )
            ordered[index] = vector

        if any(vector is None for vector in ordered):
            raise EmbeddingResponseShapeError.missing("data[].index")
        return typ.cast("list[list[float]]", ordered)
