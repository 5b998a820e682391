"""Python client for the portfolio API with a namespace-invalidated query cache."""

from .api import ApiError, Page, PortfolioClient
from .cache import QueryCache

__all__ = ["ApiError", "Page", "PortfolioClient", "QueryCache"]
