"""Loader module - pushes batches into the SQL database."""
from .service import BatchLoader, open_repository, to_model

__all__ = ["BatchLoader", "open_repository", "to_model"]
