"""Chunked LLM classification of feed items with order-preserving merge.

Items are split into fixed-size chunks that are classified concurrently.
Each backend response refers to items by their index inside the chunk, and
chunks can finish in any order, so the merge step sorts by chunk index and
then maps each local index back onto its item. The result always has one
ClassifiedItem per input item, in input order.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from radar.llm.provider import LLMProvider
from radar.prompts.loader import load_prompt, render_prompt
from radar.schemas.classification import (
    DEFAULT_RELEVANCE,
    FALLBACK_LABEL_LENGTH,
    Classification,
    ClassifiedItem,
    Quadrant,
)
from radar.schemas.feed import TaggedFeedItem

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 40
PROMPT_SNIPPET_LENGTH = 150
MAX_TOKENS = 2048

_FENCE_RE = re.compile(r"^```(?:json)?\s*\n?|\n?```\s*$", re.IGNORECASE)


@dataclass(frozen=True)
class Chunk:
    index: int
    items: tuple[TaggedFeedItem, ...]


@dataclass(frozen=True)
class ChunkResult:
    index: int
    records: dict[int, Classification]  # local index -> classification
    fallback: bool = False


def heuristic_classification(item: TaggedFeedItem) -> Classification:
    """Deterministic label used without a backend or when a chunk fails."""
    quadrant = Quadrant.COMPETITORS if item.source_type == "competitor" else Quadrant.INDUSTRY
    return Classification(
        quadrant=quadrant,
        relevance=DEFAULT_RELEVANCE,
        label=item.title[:FALLBACK_LABEL_LENGTH],
    )


def make_chunks(items: Sequence[TaggedFeedItem], chunk_size: int) -> list[Chunk]:
    """Split *items* into consecutive chunks, each carrying its position."""
    if chunk_size < 1:
        raise ValueError(f"chunk_size must be >= 1, got {chunk_size}")
    return [
        Chunk(index=n, items=tuple(items[start : start + chunk_size]))
        for n, start in enumerate(range(0, len(items), chunk_size))
    ]


def build_chunk_prompt(chunk: Chunk) -> str:
    payload = [
        {
            "index": i,
            "title": item.title,
            "snippet": item.snippet[:PROMPT_SNIPPET_LENGTH],
            "source": item.source,
            "sourceType": item.source_type,
        }
        for i, item in enumerate(chunk.items)
    ]
    return render_prompt(
        "radar_classification_v1",
        ITEM_COUNT=str(len(chunk.items)),
        ITEMS_JSON=json.dumps(payload, indent=1, ensure_ascii=False),
    )


def parse_classification_payload(text: str) -> list[dict[str, Any]]:
    """Decode a backend response into a list of raw classification dicts.

    Accepts a bare JSON array or an object wrapping it under
    ``classifications`` or ``items``; markdown fences are stripped.

    Raises:
        ValueError: If the text is not JSON or has no classification list.
    """
    cleaned = _FENCE_RE.sub("", (text or "").strip()).strip()
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        raise ValueError(f"classification response is not JSON: {exc}") from exc
    if isinstance(data, dict):
        data = data.get("classifications", data.get("items"))
    if not isinstance(data, list):
        raise ValueError("classification response has no list of classifications")
    return [entry for entry in data if isinstance(entry, dict)]


def records_from_payload(
    payload: Sequence[dict[str, Any]], chunk: Chunk
) -> dict[int, Classification]:
    """Validate raw records against the chunk.

    Records with a missing, non-integer or out-of-range index are dropped;
    for a repeated index the first record wins. Missing labels fall back to
    the item title.

    Raises:
        ValueError: If no record survives.
    """
    records: dict[int, Classification] = {}
    for raw in payload:
        local = raw.get("index")
        if isinstance(local, bool) or not isinstance(local, int):
            continue
        if not 0 <= local < len(chunk.items) or local in records:
            continue
        classification = Classification(
            quadrant=raw.get("quadrant"),
            relevance=raw.get("relevance"),
            label=raw.get("label"),
        )
        if not classification.label:
            classification = classification.model_copy(
                update={"label": chunk.items[local].title[:FALLBACK_LABEL_LENGTH]}
            )
        records[local] = classification
    if not records:
        raise ValueError("classification response matched no items")
    return records


def _fallback_result(chunk: Chunk) -> ChunkResult:
    return ChunkResult(
        index=chunk.index,
        records={i: heuristic_classification(item) for i, item in enumerate(chunk.items)},
        fallback=True,
    )


async def classify_chunk(provider: LLMProvider, chunk: Chunk) -> ChunkResult:
    """Classify one chunk; any failure degrades that chunk to the heuristic."""
    try:
        text = await asyncio.to_thread(
            provider.complete,
            build_chunk_prompt(chunk),
            system_prompt=load_prompt("radar_classification_system_v1"),
            temperature=0.0,
            max_tokens=MAX_TOKENS,
            response_format={"type": "json_object"},
        )
        records = records_from_payload(parse_classification_payload(text), chunk)
    except Exception as exc:  # noqa: BLE001
        logger.error("Classification error (chunk %d): %s", chunk.index, exc)
        return _fallback_result(chunk)

    if len(records) < len(chunk.items):
        logger.warning(
            "Classification chunk %d: backend labelled %d of %d items; heuristic for the rest",
            chunk.index,
            len(records),
            len(chunk.items),
        )
    return ChunkResult(index=chunk.index, records=records)


def merge_chunk_results(
    chunks: Sequence[Chunk], results: Sequence[ChunkResult]
) -> list[ClassifiedItem]:
    """Rebuild input order from (chunk index, local index) pairs."""
    by_index = {chunk.index: chunk for chunk in chunks}
    merged: list[ClassifiedItem] = []
    for result in sorted(results, key=lambda r: r.index):
        chunk = by_index[result.index]
        for local, item in enumerate(chunk.items):
            classification = result.records.get(local)
            if classification is None:
                classification = heuristic_classification(item)
            merged.append(
                ClassifiedItem(
                    item=item,
                    quadrant=classification.quadrant,
                    relevance=classification.relevance,
                    label=classification.label,
                )
            )
    return merged


async def classify_items(
    items: Sequence[TaggedFeedItem],
    provider: LLMProvider | None,
    *,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> list[ClassifiedItem]:
    """Classify *items*, returning one ClassifiedItem per input in input order.

    Parameters
    ----------
    items : Sequence[TaggedFeedItem]
        Items tagged with a ``competitor``/``industry`` source-type hint.
    provider : LLMProvider | None
        Classification backend. ``None`` applies the heuristic to every
        item without any external call.
    chunk_size : int
        Items per backend request.

    Returns
    -------
    list[ClassifiedItem]
        Same length and order as *items*.
    """
    chunks = make_chunks(items, chunk_size)
    if provider is None:
        logger.info("No classification backend configured; heuristic for %d items", len(items))
        return merge_chunk_results(chunks, [_fallback_result(c) for c in chunks])

    # Join barrier: nothing is merged until every chunk has resolved
    results = await asyncio.gather(*(classify_chunk(provider, c) for c in chunks))
    fallbacks = sum(1 for r in results if r.fallback)
    logger.info(
        "Classified %d items in %d chunks (%d chunk fallbacks)",
        len(items),
        len(chunks),
        fallbacks,
    )
    return merge_chunk_results(chunks, results)
