"""
DataMigrationLog — one row per completed (migration, table, old → new) step.

A step is written in the same transaction as the rows it rewrote, so a
present log row means the step is fully applied.
"""

from richhabits.models import db
from richhabits.models.base import TimestampedModel, iso


class DataMigrationLog(TimestampedModel):
    __tablename__ = "data_migration_log"

    id = db.Column(db.Integer, primary_key=True)
    migration = db.Column(db.String(100), nullable=False)
    table_name = db.Column(db.String(100), nullable=False)
    old_value = db.Column(db.String(100), nullable=False)
    new_value = db.Column(db.String(100), nullable=False)
    rows_updated = db.Column(db.Integer, default=0, nullable=False)

    __table_args__ = (
        db.UniqueConstraint(
            "migration", "table_name", "old_value", "new_value", name="uq_migration_step",
        ),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "migration": self.migration,
            "tableName": self.table_name,
            "oldValue": self.old_value,
            "newValue": self.new_value,
            "rowsUpdated": self.rows_updated,
            "createdAt": iso(self.created_at),
        }
