from __future__ import annotations

from ..extensions import db
from cuemaster.time_utils import to_utc_z


class CollectionSnapshot(db.Model):
    """
    Whole-collection document for one hall.

    WHY: Terminals sync state as complete snapshots (all sessions, all
    transactions, ...), never as row deltas. One row holds the latest full
    value of one collection for one hall.

    CONSISTENCY: Last writer wins. A write replaces `data` wholesale and
    bumps `version`; there is no merge and no ordering guarantee across
    terminals. Subscribers compare `version` to detect remote writes.

    PARTITIONING: `hall_id` is the tenant key. The configured global hall id
    (default "MAIN") holds the cross-hall staff registry and the shared
    market catalog.
    """
    __tablename__ = "collection_snapshots"
    __table_args__ = (
        db.UniqueConstraint("hall_id", "collection", name="uq_collection_snapshots_hall_collection"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    hall_id = db.Column(db.String(64), nullable=False, index=True)
    collection = db.Column(db.String(64), nullable=False)

    # Full JSON value (list for most collections, object for settings)
    data = db.Column(db.JSON, nullable=True)

    # Monotonic per row; bumped on every write
    version = db.Column(db.Integer, nullable=False, default=1)

    # Terminal that performed the last write (for echo diagnostics)
    written_by = db.Column(db.String(64), nullable=True)

    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "hall_id": self.hall_id,
            "collection": self.collection,
            "version": self.version,
            "written_by": self.written_by,
            "updated_at": to_utc_z(self.updated_at),
        }
