from datetime import datetime, timezone

from gameprofile import db

# Experience needed per level; level itself is never stored.
LEVEL_EXP_STEP = 200
PROFILE_ID_MAX_LENGTH = 64
# Counters are BIGINT columns
COUNTER_MAX = 2 ** 63 - 1


def level_for(experience):
    return (experience or 0) // LEVEL_EXP_STEP


def _utcnow():
    return datetime.now(timezone.utc)


class Profile(db.Model):
    __tablename__ = 'profile'
    id = db.Column(db.String(PROFILE_ID_MAX_LENGTH), primary_key=True)
    experience = db.Column(db.BigInteger, nullable=False, default=0)
    total_kills = db.Column(db.BigInteger, nullable=False, default=0)
    max_kill_streak = db.Column(db.BigInteger, nullable=False, default=0)
    total_plays = db.Column(db.BigInteger, nullable=False, default=0)
    # Outgoing edges only; the friend relation is directed
    friend_edges = db.relationship(
        'FriendEdge',
        back_populates='owner',
        lazy='selectin',
        order_by='[FriendEdge.added_at, FriendEdge.friend_id]',
        cascade='all, delete-orphan',
    )

    @property
    def level(self):
        return level_for(self.experience)

    @property
    def friends(self):
        return [edge.friend_id for edge in self.friend_edges]

    def to_public_dict(self):
        return {
            'id': self.id,
            'level': self.level,
            'totalKill': self.total_kills,
            'maxKill': self.max_kill_streak,
            'exp': self.experience,
            'friends': self.friends,
        }

    def to_friends_dict(self):
        return {
            'id': self.id,
            'friends': self.friends,
        }


class FriendEdge(db.Model):
    __tablename__ = 'friend_edge'
    owner_id = db.Column(db.String(PROFILE_ID_MAX_LENGTH), db.ForeignKey('profile.id'), primary_key=True)
    # No foreign key: an edge may point at a profile that has never reported progress
    friend_id = db.Column(db.String(PROFILE_ID_MAX_LENGTH), primary_key=True)
    added_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)
    owner = db.relationship('Profile', back_populates='friend_edges')
