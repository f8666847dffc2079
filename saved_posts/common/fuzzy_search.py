"""Fuzzy search utilities for matching queries against saved posts."""

from typing import Optional

from rapidfuzz import fuzz

from saved_posts.common.models import Post


def fuzzy_word_match(word: str, text: str, threshold: int) -> bool:
    """
    Check if a word appears in text with fuzzy tolerance.

    Args:
        word: The word to search for
        text: The text to search in
        threshold: Max edit distance (0 disables fuzzy matching)

    Returns:
        True if word matches any word in text within threshold
    """
    word_lower = word.lower()

    for text_word in text.lower().split():
        if word_lower == text_word:
            return True
        # Short words only match exactly
        if threshold > 0 and len(word_lower) > 3:
            # threshold=2 -> 80% similarity
            min_ratio = 100 - (threshold * 10)
            if fuzz.ratio(word_lower, text_word) >= min_ratio:
                return True
    return False


def fuzzy_search(
    text: str,
    queries: list[str],
    match_all: bool = True,
    fuzzy_threshold: int = 2,
) -> bool:
    """
    Check if text matches the search queries with fuzzy tolerance.

    Args:
        text: The text to search in
        queries: List of search terms
        match_all: If True, all queries must match (AND). If False, any query matches (OR).
        fuzzy_threshold: Max edit distance for fuzzy matching (0 disables fuzzy)

    Returns:
        True if text matches according to match_all logic
    """
    if not queries:
        return True

    matches = [fuzzy_word_match(q, text, fuzzy_threshold) for q in queries]

    if match_all:
        return all(matches)
    return any(matches)


def searchable_text(post: Post) -> str:
    """Title, content and author joined into one haystack."""
    return " ".join(part for part in (post.title, post.content, post.author_name) if part)


def search_posts(
    posts: list[Post],
    queries: list[str],
    match_all: bool = True,
    fuzzy_threshold: int = 2,
    limit: Optional[int] = None,
) -> list[Post]:
    """
    Filter posts whose title, content or author match the queries.

    Args:
        posts: Posts to search through
        queries: List of search terms
        match_all: If True, all queries must match (AND). If False, any match (OR).
        fuzzy_threshold: Max edit distance for fuzzy matching (0 disables fuzzy)
        limit: Maximum results to return

    Returns:
        Matching posts in their original order
    """
    results = []
    for post in posts:
        if fuzzy_search(searchable_text(post), queries, match_all, fuzzy_threshold):
            results.append(post)
            if limit and len(results) >= limit:
                break

    return results
