"""
Plain-text helpers shared by the analyzers.

Markup handling is regex based: enough to count structure and strip tags,
not an HTML parser or sanitizer.
"""

import re

HASHTAG_PATTERN = re.compile(r"#(\w+)")
SCRIPT_PATTERN = re.compile(r"<script[^>]*>.*?</script>", re.IGNORECASE | re.DOTALL)
STYLE_PATTERN = re.compile(r"<style[^>]*>.*?</style>", re.IGNORECASE | re.DOTALL)
TAG_PATTERN = re.compile(r"<[^>]+>")
WHITESPACE_PATTERN = re.compile(r"\s+")


def strip_executable(content: str) -> str:
    """Remove script and style blocks, keep other markup."""
    content = SCRIPT_PATTERN.sub("", content)
    return STYLE_PATTERN.sub("", content)


def plain_text(content: str) -> str:
    """Markup-free text with whitespace collapsed."""
    if not content:
        return ""
    text = TAG_PATTERN.sub(" ", strip_executable(content))
    return WHITESPACE_PATTERN.sub(" ", text).strip()


def words(text: str) -> list[str]:
    """Whitespace tokens of already plain text."""
    return text.split() if text else []


def word_set(content: str) -> set[str]:
    """Lower-cased word set of markup content."""
    return {w.lower() for w in words(plain_text(content))}


def extract_hashtags(content: str) -> list[str]:
    """Lower-cased ``#word`` tokens in order of appearance."""
    return [m.lower() for m in HASHTAG_PATTERN.findall(content or "")]


def unique(items: list[str]) -> list[str]:
    """Drop duplicates, keep first appearance."""
    return list(dict.fromkeys(items))


def jaccard(a: set[str], b: set[str]) -> float:
    if not a and not b:
        return 0.0
    return len(a & b) / len(a | b)
