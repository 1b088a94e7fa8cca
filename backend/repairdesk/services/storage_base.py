"""
RepairDesk Backend — Abstract Object Storage Interface
=======================================================

What:  Contract for the object store that receives voice recordings and
       photos.
How:   Concrete backends (LocalStorageBackend, SupabaseStorageBackend)
       implement upload() and public_url(). The UploadService owns key
       generation, content-type rules, error classification and retry; a
       backend only moves bytes and reports what went wrong.
"""

from abc import ABC, abstractmethod


class StorageBackend(ABC):
    """
    Contract:
        - upload() stores `content` under `key` and never overwrites an
          existing object
        - failures raise StorageBackendError carrying the backend's own
          status / error code / message, unclassified
        - public_url() is pure: it builds the URL without a network call
    """

    name: str = "abstract"

    @abstractmethod
    async def upload(self, key: str, content: bytes, content_type: str) -> None:
        """
        Store one object.

        Args:
            key: Object key inside the bucket, e.g. "photos/1700000000000-ab12cd.jpg"
            content: Raw bytes
            content_type: MIME type recorded with the object

        Raises:
            StorageBackendError: The store refused or failed the write.
        """
        ...

    @abstractmethod
    def public_url(self, key: str) -> str:
        """Publicly fetchable URL of a stored object."""
        ...
