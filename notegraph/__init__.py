"""
NoteGraph - a personal knowledge graph with relevance search and traversal.
"""

__version__ = "0.1.0"
