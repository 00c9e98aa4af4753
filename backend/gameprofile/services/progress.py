"""Game-save merging.

A batch is a list of per-profile deltas. Each delta is folded into the
stored counters with fixed reducers:

- ``total_plays`` += 1
- ``total_kills`` += kills
- ``experience`` += exp
- ``max_kill_streak`` = max(stored, candidate)

Entries are applied independently, each as one atomic update (or an
insert when the profile does not exist yet). Sum and max commute, so the
order of entries, and of concurrent batches, does not change the result.
Resubmitting a batch applies it again.
"""
from dataclasses import dataclass
from typing import Iterable, List

import sqlalchemy as sa
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from gameprofile.errors import StorageFault, ValidationError
from gameprofile.models import COUNTER_MAX, PROFILE_ID_MAX_LENGTH, Profile


@dataclass(frozen=True)
class ProgressDelta:
    id: str
    exp: int
    kills: int
    kill_streak: int

    @classmethod
    def from_dict(cls, entry, index: int = 0) -> 'ProgressDelta':
        if not isinstance(entry, dict):
            raise ValidationError(f'progress[{index}] must be an object')
        profile_id = entry.get('id')
        if not isinstance(profile_id, str) or not profile_id or len(profile_id) > PROFILE_ID_MAX_LENGTH:
            raise ValidationError(f'progress[{index}].id must be a non-empty string')
        return cls(
            id=profile_id,
            exp=_counter(entry, 'exp', index),
            kills=_counter(entry, 'totalKill', index),
            kill_streak=_counter(entry, 'maxKill', index),
        )


def _counter(entry: dict, field: str, index: int) -> int:
    value = entry.get(field)
    # bool is an int subclass but never a valid counter
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f'progress[{index}].{field} must be an integer')
    if value < 0:
        raise ValidationError(f'progress[{index}].{field} must not be negative')
    if value > COUNTER_MAX:
        raise ValidationError(f'progress[{index}].{field} is too large')
    return value


def parse_progress(payload) -> List[ProgressDelta]:
    """Validate a ``{"progress": [...]}`` body into typed deltas."""
    if not isinstance(payload, dict):
        raise ValidationError('Body must be a JSON object')
    entries = payload.get('progress')
    if not isinstance(entries, list):
        raise ValidationError('progress must be an array')
    return [ProgressDelta.from_dict(entry, i) for i, entry in enumerate(entries)]


def _update_statement(delta: ProgressDelta):
    return (
        sa.update(Profile)
        .where(Profile.id == delta.id)
        .values(
            total_plays=Profile.total_plays + 1,
            total_kills=Profile.total_kills + delta.kills,
            experience=Profile.experience + delta.exp,
            max_kill_streak=sa.case(
                (Profile.max_kill_streak < delta.kill_streak, delta.kill_streak),
                else_=Profile.max_kill_streak,
            ),
        )
        .execution_options(synchronize_session=False)
    )


def _apply_delta(session, delta: ProgressDelta) -> None:
    result = session.execute(_update_statement(delta))
    if result.rowcount:
        return
    try:
        with session.begin_nested():
            session.add(Profile(
                id=delta.id,
                total_plays=1,
                total_kills=delta.kills,
                experience=delta.exp,
                max_kill_streak=delta.kill_streak,
            ))
    except IntegrityError:
        # Lost the insert race; the row exists now
        session.execute(_update_statement(delta))


def merge_batch(session, deltas: Iterable[ProgressDelta]) -> int:
    """Apply every delta, committing each one on its own.

    Returns the number of entries applied. A storage error stops the batch
    and raises StorageFault; entries committed before it stay applied.
    """
    applied = 0
    for delta in deltas:
        try:
            _apply_delta(session, delta)
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            raise StorageFault(str(exc)) from exc
        applied += 1
    return applied
