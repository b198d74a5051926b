"""
Adapter pattern implementations for the job store and blob store.

This module provides abstract base classes and concrete implementations
for the job store (Postgres) and frame storage (S3).
"""

from .base import JobStoreAdapter, BlobStoreAdapter
from .postgres_adapter import PostgresJobStoreAdapter
from .s3_adapter import S3BlobStoreAdapter

__all__ = [
    'JobStoreAdapter',
    'BlobStoreAdapter',
    'PostgresJobStoreAdapter',
    'S3BlobStoreAdapter'
]
