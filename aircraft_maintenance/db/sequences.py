"""
Monotonic counters owned by the entity store.

Values are issued inside the caller's transaction, so a number is only
consumed when the entity that uses it is committed.
"""

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .models import CounterModel

EMPLOYEE_NUMBER = "employee_number"
TASK_ID = "task_id"


def next_sequence_value(db: Session, name: str, start: int = 1) -> int:
    """Return the next value of counter ``name``, seeding it at ``start``."""
    result = db.execute(
        update(CounterModel)
        .where(CounterModel.name == name)
        .values(value=CounterModel.value + 1)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        try:
            with db.begin_nested():
                db.add(CounterModel(name=name, value=start))
            return start
        except IntegrityError:
            # Another writer seeded the counter first
            return next_sequence_value(db, name, start)

    return db.execute(
        select(CounterModel.value).where(CounterModel.name == name)
    ).scalar_one()
