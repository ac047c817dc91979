from __future__ import annotations

from ..extensions import db
from poultrydesk.time_utils import to_utc_z


class Report(db.Model):
    """Metadata for a generated PDF report. One row per generation call."""
    __tablename__ = "reports"
    __table_args__ = (
        db.Index("ix_reports_user_generated_at", "user_id", "generated_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    report_type = db.Column(db.String(32), nullable=False)  # sales, expenses, egg_production, ...
    name = db.Column(db.String(255), nullable=False)  # PDF filename
    file_path = db.Column(db.String(1024), nullable=False)

    start_date = db.Column(db.DateTime(timezone=True), nullable=True)
    end_date = db.Column(db.DateTime(timezone=True), nullable=True)
    generated_at = db.Column(db.DateTime(timezone=True), nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "report_type": self.report_type,
            "name": self.name,
            "file_path": self.file_path,
            "start_date": to_utc_z(self.start_date),
            "end_date": to_utc_z(self.end_date),
            "generated_at": to_utc_z(self.generated_at),
        }
