"""
Core building blocks: graph storage, analysis, caching and events.
"""
