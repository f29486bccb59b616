"""
News providers for Newsdesk.
"""
from newsdesk.sources.base import NewsProvider
from newsdesk.sources.guardian import GuardianProvider
from newsdesk.sources.newsapi import NewsAPIProvider
from newsdesk.sources.nytimes import NewYorkTimesProvider

PROVIDERS: dict[str, type[NewsProvider]] = {
    "newsapi": NewsAPIProvider,
    "guardian": GuardianProvider,
    "new_york_times": NewYorkTimesProvider,
}

__all__ = [
    "NewsProvider",
    "NewsAPIProvider",
    "GuardianProvider",
    "NewYorkTimesProvider",
    "PROVIDERS",
]
