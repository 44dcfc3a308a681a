"""freereader - full-text article extraction through mirror strategies.

The entry point is :class:`freereader.crawler.orchestrator.ArticleFetcher`.
"""

__version__ = "0.1.0"
