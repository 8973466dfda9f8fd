"""Input source handlers (ingesters) for docsync."""

from docsync.ingesters.folder_ingester import FolderIngester, hash_content, should_skip

__all__ = ["FolderIngester", "hash_content", "should_skip"]
