from .draft_store import DraftStore
from .profile_store import ProfileVersion, SQLiteProfileStore, StoredProfile

__all__ = ["DraftStore", "ProfileVersion", "SQLiteProfileStore", "StoredProfile"]
