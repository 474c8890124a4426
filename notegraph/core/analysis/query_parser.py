"""
Search query parsing.

Order matters: quoted phrases are pulled out first so that a ``#`` inside a
phrase is not read as a tag, then tags, then whatever is left is split into
terms.
"""

import re

from notegraph.core.analysis.text import unique
from notegraph.models.search import ParsedQuery

QUOTED_PHRASE = re.compile(r'"([^"]+)"')
TAG_TOKEN = re.compile(r"#\w+")


class QueryParser:
    """Split raw query text into phrases, tags and free-text terms."""

    def parse(self, query: str) -> ParsedQuery:
        working = (query or "").strip()

        phrases = [p.strip().lower() for p in QUOTED_PHRASE.findall(working) if p.strip()]
        working = QUOTED_PHRASE.sub(" ", working)

        tags = [
            token[1:].lower()
            for token in working.split()
            if token.startswith("#") and len(token) > 1
        ]
        working = TAG_TOKEN.sub(" ", working)

        terms = [token.lower() for token in working.split() if token]

        return ParsedQuery(terms=unique(terms), phrases=unique(phrases), tags=unique(tags))

    @staticmethod
    def scoring_text(query: str) -> str:
        """Lower-cased query with quote marks dropped, used for substring scoring."""
        return " ".join(query.replace('"', " ").split()).lower()
