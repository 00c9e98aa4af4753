from typing import Iterable, List

import sqlalchemy as sa
from sqlalchemy.exc import SQLAlchemyError

from gameprofile.errors import NotFound, StorageFault
from gameprofile.models import Profile


def _unique(ids: Iterable[str]) -> List[str]:
    seen = set()
    ordered = []
    for profile_id in ids:
        if profile_id not in seen:
            seen.add(profile_id)
            ordered.append(profile_id)
    return ordered


def _load(session, ids: Iterable[str]) -> List[Profile]:
    """Load the existing profiles among ``ids``, in request order.

    Raises NotFound when none of them exist.
    """
    wanted = _unique(ids)
    if not wanted:
        raise NotFound()
    try:
        rows = session.execute(sa.select(Profile).where(Profile.id.in_(wanted))).scalars().all()
    except SQLAlchemyError as exc:
        session.rollback()
        raise StorageFault(str(exc)) from exc
    by_id = {row.id: row for row in rows}
    found = [by_id[i] for i in wanted if i in by_id]
    if not found:
        raise NotFound()
    return found


def fetch_public(session, ids: Iterable[str]) -> List[dict]:
    return [profile.to_public_dict() for profile in _load(session, ids)]


def fetch_friends(session, ids: Iterable[str]) -> List[dict]:
    return [profile.to_friends_dict() for profile in _load(session, ids)]
