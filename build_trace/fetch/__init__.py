"""Build data transports.

All transports implement BuildGraphFetcher and return fully decoded builds.
"""

from .factory import create_fetcher
from .graphql import GraphQLBuildFetcher
from .memory import MemoryBuildFetcher
from .protocol import BuildGraphFetcher
from .rest import RestBuildFetcher

__all__ = [
    "BuildGraphFetcher",
    "GraphQLBuildFetcher",
    "MemoryBuildFetcher",
    "RestBuildFetcher",
    "create_fetcher",
]
