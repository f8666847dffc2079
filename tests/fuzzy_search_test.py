from datetime import datetime, timezone

from saved_posts.common.formatting import clean_text, simplify_post
from saved_posts.common.fuzzy_search import fuzzy_search, fuzzy_word_match, search_posts
from saved_posts.common.models import Post


def make_post(post_id: str, content: str, title: str = None, metadata: dict = None) -> Post:
    return Post(
        platform_post_id=post_id,
        url=f"https://example.com/{post_id}",
        title=title,
        content=content,
        author_name="alice",
        saved_at=datetime(2024, 3, 1, 12, tzinfo=timezone.utc),
        metadata=metadata or {},
    )


def test_fuzzy_word_match_tolerates_typos():
    assert fuzzy_word_match("python", "Learning Python today", threshold=2)
    assert fuzzy_word_match("pythn", "learning python today", threshold=2)
    assert not fuzzy_word_match("pythn", "learning python today", threshold=0)


def test_short_words_only_match_exactly():
    assert fuzzy_word_match("rust", "rust is fun", threshold=2)
    assert not fuzzy_word_match("rst", "rust is fun", threshold=2)


def test_fuzzy_search_and_or():
    text = "async python tips"

    assert fuzzy_search(text, ["python", "async"], match_all=True)
    assert not fuzzy_search(text, ["python", "golang"], match_all=True)
    assert fuzzy_search(text, ["python", "golang"], match_all=False)
    assert fuzzy_search(text, [])


def test_search_posts_matches_title_and_respects_limit():
    posts = [
        make_post("1", "https://example.com/link", title="Understanding asyncio"),
        make_post("2", "Nothing relevant here"),
        make_post("3", "More asyncio patterns"),
    ]

    assert [post.platform_post_id for post in search_posts(posts, ["asyncio"])] == ["1", "3"]
    assert [post.platform_post_id for post in search_posts(posts, ["asyncio"], limit=1)] == ["1"]
    assert [post.platform_post_id for post in search_posts(posts, ["alice"])] == ["1", "2", "3"]


def test_clean_text_normalizes_and_truncates():
    assert clean_text("It’s “fine”…") == "It's \"fine\"..."
    assert clean_text("abcdefghij", max_length=8) == "abcde..."


def test_simplify_post_drops_empty_fields():
    post = make_post(
        "1",
        "Hello",
        metadata={"sourceType": "bookmark", "public_metrics": {"like_count": 3, "reply_count": 0}},
    )

    assert simplify_post(post) == {
        "id": "1",
        "author": "alice",
        "content": "Hello",
        "url": "https://example.com/1",
        "saved_at": "2024-03-01T12:00:00Z",
        "source": "bookmark",
        "metrics": {"likes": 3},
    }


def test_simplify_reddit_post():
    post = make_post(
        "abc",
        "Body",
        title="Title",
        metadata={"type": "submission", "subreddit": "python", "score": 12, "num_comments": 0},
    )

    simplified = simplify_post(post)

    assert simplified["title"] == "Title"
    assert simplified["source"] == "submission"
    assert simplified["subreddit"] == "python"
    assert simplified["metrics"] == {"score": 12}
