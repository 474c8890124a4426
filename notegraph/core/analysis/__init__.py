"""
Content, similarity and query analysis.
"""

from notegraph.core.analysis.content_analyzer import (
    AnalyzedContent,
    ContentAnalyzer,
    ContentMetrics,
    ContentStructure,
    QualityWeights,
)
from notegraph.core.analysis.query_parser import QueryParser
from notegraph.core.analysis.similarity import SimilarityAnalyzer, SimilarityWeights

__all__ = [
    "AnalyzedContent",
    "ContentAnalyzer",
    "ContentMetrics",
    "ContentStructure",
    "QualityWeights",
    "QueryParser",
    "SimilarityAnalyzer",
    "SimilarityWeights",
]
