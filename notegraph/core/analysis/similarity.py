"""
Pairwise note similarity from content, tag and title overlap.
"""

from notegraph.core.analysis.text import jaccard, word_set
from notegraph.models.note import Note
from notegraph.models.search import SimilarNote


class SimilarityWeights:
    """Weights of the similarity components; they sum to 1.0."""

    CONTENT = 0.5
    TAGS = 0.3
    TITLE = 0.2


def title_overlap(a: set[str], b: set[str]) -> float:
    """Shared title words over the larger title's word count."""
    if not a or not b:
        return 0.0
    return len(a & b) / max(len(a), len(b))


class SimilarityAnalyzer:
    """
    Combined similarity between two notes.

    A component whose inputs are empty on both sides carries no signal and is
    left out; the remaining weights are rescaled so identical notes always
    score 1.0.

    Rescaling moves the effective find-similar threshold. Between two untagged
    notes, content and title share the whole score (weights 0.5/0.7 and
    0.2/0.7), so a content Jaccard of about 0.14 alone clears the default
    ``min_score`` of 0.1. Once either note carries a tag, the tag component
    counts even at zero overlap and the same content needs a Jaccard of 0.2.
    """

    def similarity(self, a: Note, b: Note) -> float:
        """Weighted similarity in [0, 1]. Symmetric."""
        components = []

        content_a, content_b = word_set(a.content), word_set(b.content)
        if content_a or content_b:
            components.append((SimilarityWeights.CONTENT, jaccard(content_a, content_b)))

        tags_a, tags_b = set(a.tags), set(b.tags)
        if tags_a or tags_b:
            components.append((SimilarityWeights.TAGS, jaccard(tags_a, tags_b)))

        title_a, title_b = word_set(a.title), word_set(b.title)
        if title_a or title_b:
            components.append((SimilarityWeights.TITLE, title_overlap(title_a, title_b)))

        total_weight = sum(weight for weight, _ in components)
        if total_weight == 0:
            return 0.0

        score = sum(weight * value for weight, value in components) / total_weight
        return min(1.0, max(0.0, score))

    def find_similar(
        self,
        source: Note,
        candidates: list[Note],
        limit: int = 10,
        min_score: float = 0.1,
    ) -> list[SimilarNote]:
        """
        Score every candidate against ``source``.

        Linear in the number of candidates; callers pass one user's notes.

        Args:
            source: Note to compare against
            candidates: Notes to score (``source`` itself is skipped)
            limit: Maximum results
            min_score: Drop candidates scoring below this

        Returns:
            Similar notes, best first
        """
        scored = []
        for candidate in candidates:
            if candidate.id == source.id:
                continue
            score = self.similarity(source, candidate)
            if score >= min_score:
                scored.append(SimilarNote(note=candidate, score=round(score, 6)))

        scored.sort(key=lambda s: (-s.score, -s.note.updated_at.timestamp()))
        return scored[:limit]
