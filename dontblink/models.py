from dontblink import db
from datetime import datetime, timezone

NAME_MAX_LENGTH = 32
# Largest value a SQL INTEGER column holds on every backend
SCORE_MAX = 2**31 - 1


def _utcnow():
    return datetime.now(timezone.utc)


class Score(db.Model):
    __tablename__ = 'score'
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(NAME_MAX_LENGTH), nullable=False)
    score = db.Column(db.Integer, nullable=False, index=True)  # average reaction time (ms)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow, nullable=False)
