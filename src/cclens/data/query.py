"""Query evaluation and ranking over a ``SearchIndex``."""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable

from cclens.data.index import SearchIndex
from cclens.models.search import SearchMode, SearchResult

_TOKEN_RE = re.compile(r"\w+")

type Matcher = Callable[[str], bool]


def tokenize(text: str) -> list[str]:
    """Split text into lowercase word tokens, dropping punctuation."""
    return _TOKEN_RE.findall(text.lower())


def compile_matcher(query: str, mode: SearchMode) -> Matcher | None:
    """Build a predicate over lowercased text, or None for a query with no tokens."""
    tokens = tokenize(query)
    if not tokens:
        return None

    if mode is SearchMode.EXACT:
        phrase = re.compile(rf"\b{re.escape(query.strip().lower())}\b")
        return lambda text: phrase.search(text) is not None

    return lambda text: all(token in text for token in tokens)


def run_query(
    index: SearchIndex,
    query: str,
    mode: SearchMode = SearchMode.EXACT,
) -> list[SearchResult]:
    """Evaluate a query and return results ranked by match count then recency."""
    matcher = compile_matcher(query, mode)
    if matcher is None:
        return []

    # dict keys keep first-seen order, so message ids stay in log order
    matches: dict[str, dict[str, None]] = {}
    for entry in index.iter_entries():
        if matcher(entry.lowercased_text):
            matches.setdefault(entry.conversation_id, {})[entry.message_id] = None

    results: list[SearchResult] = []
    for conversation_id, message_ids in matches.items():
        conversation = index.conversation(conversation_id)
        if conversation is None:
            continue
        results.append(
            SearchResult(
                conversation_id=conversation_id,
                project_id=conversation.project_id,
                conversation=conversation,
                matching_message_ids=list(message_ids),
            )
        )
    return rank_results(results)


def rank_results(results: Iterable[SearchResult]) -> list[SearchResult]:
    return sorted(results, key=_rank_key)


def merge_results(*groups: Iterable[SearchResult]) -> list[SearchResult]:
    """Concatenate independently computed result groups and re-rank them."""
    return rank_results(result for group in groups for result in group)


def first_match_offset(text: str, query: str, mode: SearchMode) -> int:
    """Offset of the first match in ``text``, or -1."""
    lowered = text.lower()
    if mode is SearchMode.EXACT:
        match = re.search(rf"\b{re.escape(query.strip().lower())}\b", lowered)
        return match.start() if match else -1
    offsets = [lowered.find(token) for token in tokenize(query)]
    found = [offset for offset in offsets if offset >= 0]
    return min(found) if found else -1


def make_preview(
    text: str,
    query: str,
    mode: SearchMode,
    before: int = 50,
    after: int = 150,
) -> str:
    """Excerpt of ``text`` around the first match, marked with ``...`` when clipped."""
    offset = max(first_match_offset(text, query, mode), 0)
    start = max(0, offset - before)
    end = min(len(text), offset + after)
    prefix = "..." if start > 0 else ""
    suffix = "..." if end < len(text) else ""
    return f"{prefix}{text[start:end]}{suffix}"


def _rank_key(result: SearchResult) -> tuple[int, float, str]:
    return (-result.match_count, -result.last_updated.timestamp(), result.conversation_id)
