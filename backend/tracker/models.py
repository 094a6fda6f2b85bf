from tracker import db
import json
import time


class StoredValue(db.Model):
    """One persisted tournament key holding a JSON-encoded value."""
    __tablename__ = 'stored_value'
    key = db.Column(db.String(64), primary_key=True)
    value = db.Column(db.Text, nullable=True)
    updated_at = db.Column(db.Float, nullable=False, default=time.time)

    def decoded(self):
        return json.loads(self.value) if self.value else None
