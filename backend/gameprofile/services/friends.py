import sqlalchemy as sa
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from gameprofile.errors import Conflict, StorageFault
from gameprofile.models import FriendEdge, Profile


def _reject_self(subject_id: str, target_id: str) -> None:
    if subject_id == target_id:
        raise Conflict()


def _exists(session, model, key) -> bool:
    return session.get(model, key) is not None


def _ensure_profile(session, profile_id: str) -> None:
    if _exists(session, Profile, profile_id):
        return
    try:
        with session.begin_nested():
            session.add(Profile(id=profile_id))
    except IntegrityError:
        # Another request created it first
        pass


def _ensure_edge(session, owner_id: str, friend_id: str) -> None:
    if _exists(session, FriendEdge, (owner_id, friend_id)):
        return
    try:
        with session.begin_nested():
            session.add(FriendEdge(owner_id=owner_id, friend_id=friend_id))
    except IntegrityError:
        pass


def add_friend(session, subject_id: str, target_id: str) -> None:
    """Add the directed edge subject -> target.

    Creates the subject profile when missing. Adding an edge that already
    exists is a successful no-op.
    """
    _reject_self(subject_id, target_id)
    try:
        _ensure_profile(session, subject_id)
        _ensure_edge(session, subject_id, target_id)
        session.commit()
    except SQLAlchemyError as exc:
        session.rollback()
        raise StorageFault(str(exc)) from exc


def remove_friend(session, subject_id: str, target_id: str) -> None:
    """Remove the directed edge subject -> target if present.

    Never creates a profile; removing a missing edge succeeds.
    """
    _reject_self(subject_id, target_id)
    try:
        session.execute(
            sa.delete(FriendEdge).where(
                FriendEdge.owner_id == subject_id,
                FriendEdge.friend_id == target_id,
            )
        )
        session.commit()
    except SQLAlchemyError as exc:
        session.rollback()
        raise StorageFault(str(exc)) from exc
