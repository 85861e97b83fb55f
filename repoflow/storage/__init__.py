"""Blob storage backends."""

from repoflow.storage.blob import BlobNotFound, BlobStore, LocalBlobStore

__all__ = [
    "BlobNotFound",
    "BlobStore",
    "LocalBlobStore",
]
