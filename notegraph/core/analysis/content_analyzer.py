"""
Content analysis run on every note write.

Normalizes title, content and tags, then derives word count, reading time,
structure counts, an auto-summary and a quality score.
"""

import re

from pydantic import BaseModel

from notegraph.core.analysis.text import (
    WHITESPACE_PATTERN,
    extract_hashtags,
    plain_text,
    strip_executable,
    unique,
    words,
)
from notegraph.models.note import CONTENT_MAX_LENGTH, SUMMARY_MAX_LENGTH, TITLE_MAX_LENGTH
from notegraph.utils.exceptions import ValidationError
from notegraph.utils.logger import get_logger

logger = get_logger(__name__)

HEADING_PATTERN = re.compile(r"<h[1-6][^>]*>(.*?)</h[1-6]>", re.IGNORECASE | re.DOTALL)
LINK_PATTERN = re.compile(r"<a[^>]*>(.*?)</a>", re.IGNORECASE | re.DOTALL)
LIST_PATTERN = re.compile(r"<(ul|ol)[^>]*>.*?</\1>", re.IGNORECASE | re.DOTALL)
PARAGRAPH_PATTERN = re.compile(r"<p[\s>]", re.IGNORECASE)
SENTENCE_SPLIT = re.compile(r"[.!?]+")
BLANK_LINE_SPLIT = re.compile(r"\n\s*\n")
EDGE_PUNCTUATION = re.compile(r"^[\s\W_]+|[\s\W_]+$")

WORDS_PER_MINUTE = 200
SUMMARY_SOURCE_THRESHOLD = 150
SUMMARY_BODY_LIMIT = 147
SUMMARY_ELLIPSIS = "..."


class QualityWeights:
    """Additive contributions to a note's quality score."""

    FULL_LENGTH = 0.3  # 100..2000 words
    SHORT_LENGTH = 0.15  # 50..99 words
    HEADINGS = 0.2
    LINKS = 0.15
    LISTS = 0.1
    PER_TAG = 0.05
    MAX_TAG_BONUS = 0.25


class ContentMetrics(BaseModel):
    word_count: int
    reading_time: int
    sentence_count: int
    paragraph_count: int


class ContentStructure(BaseModel):
    heading_count: int
    link_count: int
    list_count: int


class AnalyzedContent(BaseModel):
    """Normalized fields and derived metrics for a note."""

    title: str
    content: str
    summary: str
    tags: list[str]
    metrics: ContentMetrics
    structure: ContentStructure
    quality_score: float

    @property
    def word_count(self) -> int:
        return self.metrics.word_count

    @property
    def reading_time(self) -> int:
        return self.metrics.reading_time


class ContentAnalyzer:
    """
    Write-time analyzer for note content.

    Invalid input raises ValidationError; nothing is truncated silently.
    """

    def analyze(
        self,
        title: str | None,
        content: str | None,
        tags: list[str] | None = None,
        summary: str | None = None,
    ) -> AnalyzedContent:
        """
        Normalize and enrich a note.

        Args:
            title: Raw title
            content: Raw content (may contain markup)
            tags: Caller-supplied tags
            summary: Caller-supplied summary; auto-generated when empty

        Returns:
            AnalyzedContent

        Raises:
            ValidationError: On empty/oversized title, oversized content or summary
        """
        clean_title = self.normalize_title(title)
        clean_content = self.normalize_content(content)

        if summary is not None and len(summary.strip()) > SUMMARY_MAX_LENGTH:
            raise ValidationError(
                f"Summary exceeds {SUMMARY_MAX_LENGTH} characters",
                {"length": len(summary.strip())},
            )

        text = plain_text(clean_content)
        metrics = self.compute_metrics(clean_content, text)
        structure = self.analyze_structure(clean_content)
        all_tags = self.merge_tags(tags, clean_content)

        final_summary = summary.strip() if summary and summary.strip() else self.summarize(text)
        quality = self.quality_score(metrics, structure, len(all_tags))

        logger.bind(tags=len(all_tags), headings=structure.heading_count).debug(
            f"Analyzed note content: {metrics.word_count} words, quality {quality:.2f}"
        )

        return AnalyzedContent(
            title=clean_title,
            content=clean_content,
            summary=final_summary,
            tags=all_tags,
            metrics=metrics,
            structure=structure,
            quality_score=quality,
        )

    # ═══════════════════════════════════════════════════════════
    # NORMALIZATION
    # ═══════════════════════════════════════════════════════════

    @staticmethod
    def normalize_title(title: str | None) -> str:
        """Trim, collapse whitespace and strip edge punctuation."""
        if title is None or not title.strip():
            raise ValidationError("Title is required")

        cleaned = WHITESPACE_PATTERN.sub(" ", title.strip())
        cleaned = EDGE_PUNCTUATION.sub("", cleaned)

        if not cleaned:
            raise ValidationError("Title is required", {"raw_title": title})
        if len(cleaned) > TITLE_MAX_LENGTH:
            raise ValidationError(
                f"Title exceeds {TITLE_MAX_LENGTH} characters", {"length": len(cleaned)}
            )
        return cleaned

    @staticmethod
    def normalize_content(content: str | None) -> str:
        """Trim and drop script/style blocks."""
        if not content:
            return ""
        if len(content) > CONTENT_MAX_LENGTH:
            raise ValidationError(
                f"Content exceeds {CONTENT_MAX_LENGTH} characters", {"length": len(content)}
            )
        return strip_executable(content.strip()).strip()

    @staticmethod
    def merge_tags(tags: list[str] | None, content: str) -> list[str]:
        """Caller tags plus content hashtags, lower-cased and deduplicated."""
        requested = [t.strip().lstrip("#").lower() for t in (tags or [])]
        return unique([t for t in requested if t] + extract_hashtags(content))

    # ═══════════════════════════════════════════════════════════
    # METRICS
    # ═══════════════════════════════════════════════════════════

    @staticmethod
    def compute_metrics(content: str, text: str) -> ContentMetrics:
        word_count = len(words(text))
        reading_time = max(1, word_count // WORDS_PER_MINUTE)
        sentence_count = len([s for s in SENTENCE_SPLIT.split(text) if s.strip()])

        paragraph_count = len(PARAGRAPH_PATTERN.findall(content))
        if paragraph_count == 0 and content:
            paragraph_count = len([p for p in BLANK_LINE_SPLIT.split(content) if p.strip()])

        return ContentMetrics(
            word_count=word_count,
            reading_time=reading_time,
            sentence_count=sentence_count,
            paragraph_count=paragraph_count,
        )

    @staticmethod
    def analyze_structure(content: str) -> ContentStructure:
        return ContentStructure(
            heading_count=len(HEADING_PATTERN.findall(content)),
            link_count=len(LINK_PATTERN.findall(content)),
            list_count=len(LIST_PATTERN.findall(content)),
        )

    @staticmethod
    def summarize(text: str) -> str:
        """
        Auto-summary from plain text.

        Short text is returned as is; longer text is cut at whole sentences
        so that the body stays within SUMMARY_BODY_LIMIT, then an ellipsis is
        appended. A first sentence that is already too long is cut hard.
        """
        if len(text) <= SUMMARY_SOURCE_THRESHOLD:
            return text

        summary = ""
        for sentence in text.split(". "):
            candidate = f"{summary}. {sentence}" if summary else sentence
            if len(candidate) > SUMMARY_BODY_LIMIT:
                break
            summary = candidate

        if not summary:
            summary = text[:SUMMARY_BODY_LIMIT].rstrip()
        return summary + SUMMARY_ELLIPSIS

    @staticmethod
    def quality_score(metrics: ContentMetrics, structure: ContentStructure, tag_count: int) -> float:
        score = 0.0

        if 100 <= metrics.word_count <= 2000:
            score += QualityWeights.FULL_LENGTH
        elif 50 <= metrics.word_count < 100:
            score += QualityWeights.SHORT_LENGTH

        if structure.heading_count > 0:
            score += QualityWeights.HEADINGS
        if structure.link_count > 0:
            score += QualityWeights.LINKS
        if structure.list_count > 0:
            score += QualityWeights.LISTS

        score += min(QualityWeights.MAX_TAG_BONUS, QualityWeights.PER_TAG * tag_count)

        return round(min(1.0, score), 4)
