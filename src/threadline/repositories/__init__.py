"""Repository layer: the remote store interface and its SQL implementation."""

from threadline.repositories.profile_repo import ProfileRepository
from threadline.repositories.sql_store import SqlRemoteStore
from threadline.repositories.store import PostFilter, PostOrder, RemoteStore

__all__ = ["PostFilter", "PostOrder", "ProfileRepository", "RemoteStore", "SqlRemoteStore"]
