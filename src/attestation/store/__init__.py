"""Attestation persistence package.

Provides the SQLite schema, a transactional connection wrapper, and one
store class per entity.  The engine depends only on the structural
protocols in :mod:`attestation.store.protocols`.
"""

from attestation.store.assets import AssetStore, NewAssetStore
from attestation.store.campaigns import CampaignStore
from attestation.store.database import Database
from attestation.store.invites import PendingInviteStore
from attestation.store.records import RecordStore
from attestation.store.schema import create_tables, init_attestation_db
from attestation.store.users import UserStore

__all__ = [
    "AssetStore",
    "CampaignStore",
    "Database",
    "NewAssetStore",
    "PendingInviteStore",
    "RecordStore",
    "UserStore",
    "create_tables",
    "init_attestation_db",
]
