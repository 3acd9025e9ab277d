from luckyjet import db


def _iso(value):
    return value.isoformat() if value else None


class Round(db.Model):
    """A pre-generated round waiting in the backlog (or currently being played)."""
    __tablename__ = 'luckyjet_round'
    id = db.Column(db.Integer, primary_key=True)
    round_id = db.Column(db.BigInteger, nullable=False, index=True)
    crash_point = db.Column(db.Float, nullable=False)
    is_running = db.Column(db.Boolean, default=False, nullable=False)
    created_at = db.Column(db.DateTime, server_default=db.func.now(), nullable=False)

    def __repr__(self):
        return f"<Round id={self.id} round_id={self.round_id} crash_point={self.crash_point}>"


class RoundLog(db.Model):
    __tablename__ = 'luckyjet_round_log'
    id = db.Column(db.Integer, primary_key=True)
    round_id = db.Column(db.BigInteger, nullable=False)
    crash_point = db.Column(db.Float, nullable=False)
    created_at = db.Column(db.DateTime, server_default=db.func.now(), nullable=False)

    def to_dict(self):
        return {
            'id': self.id,
            'roundId': self.round_id,
            'crashPoint': self.crash_point,
            'createdAt': _iso(self.created_at),
        }
