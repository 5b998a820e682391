"""Application package for the portfolio backend.

This package exposes the service, repository and model modules used by
the FastAPI application, plus a small typed HTTP client with a query
cache under `portfolio_api.client`. Individual modules contain the
concrete implementations and documentation.
"""
