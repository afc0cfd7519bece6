"""Sequential document numbers per owner and document kind.

The counter lives in one table row per ``(owner_id, kind)``. Taking a number
is a single ``UPDATE ... RETURNING`` statement, so two generations running at
the same time can never receive the same value.

Committed numbers are also recorded with their issue date and the
idempotency key of the request that took them, so a repeated request gets
its earlier number back and an edited document keeps its original date.
"""

import logging
from dataclasses import dataclass
from datetime import date

from sqlalchemy import (
    Column,
    Date,
    Integer,
    MetaData,
    String,
    Table,
    UniqueConstraint,
    create_engine,
    insert,
    select,
    update,
)
from sqlalchemy.exc import IntegrityError

from .errors import DocumentError
from .models import DocumentKind

logger = logging.getLogger(__name__)

metadata = MetaData()

counters = Table(
    "document_counters",
    metadata,
    Column("owner_id", String(64), primary_key=True),
    Column("kind", String(32), primary_key=True),
    Column("last_value", Integer, nullable=False),
)

# every committed number, with its issue date and the key of the request that took it
issued = Table(
    "issued_documents",
    metadata,
    Column("owner_id", String(64), primary_key=True),
    Column("kind", String(32), primary_key=True),
    Column("number", String(128), primary_key=True),
    Column("issue_date", Date, nullable=False),
    Column("idempotency_key", String(128)),
    UniqueConstraint("owner_id", "kind", "idempotency_key"),
)


@dataclass(frozen=True)
class IssuedNumber:
    number: str
    issue_date: date


def format_document_number(prefix, value, suffix):
    return f"{prefix or ''}{value}{suffix or ''}"


class NumberingAllocator:
    def __init__(self, engine):
        self.engine = engine

    @classmethod
    def from_url(cls, url, **engine_options):
        engine = create_engine(url, **engine_options)
        metadata.create_all(engine)
        return cls(engine)

    def _match(self, owner_id, kind):
        return (counters.c.owner_id == owner_id) & (counters.c.kind == DocumentKind(kind).value)

    def allocate(self, owner_id, kind, start=0):
        """Consume and return the next number.

        ``start`` is the last number already in use when the owner has no
        counter yet, so the first allocation returns ``start + 1``.
        """
        kind = DocumentKind(kind)
        bump = (
            update(counters)
            .where(self._match(owner_id, kind))
            .values(last_value=counters.c.last_value + 1)
            .returning(counters.c.last_value)
        )
        for _ in range(3):
            with self.engine.begin() as conn:
                row = conn.execute(bump).first()
            if row is not None:
                logger.info("Allocated %s number %d for owner %s", kind.value, row[0], owner_id)
                return row[0]
            try:
                with self.engine.begin() as conn:
                    conn.execute(
                        insert(counters).values(owner_id=owner_id, kind=kind.value, last_value=start + 1)
                    )
            except IntegrityError:
                # another generation created the counter first, bump that one
                continue
            logger.info("Started %s numbering at %d for owner %s", kind.value, start + 1, owner_id)
            return start + 1
        raise DocumentError(f"Could not allocate a {kind.value} number")

    def peek(self, owner_id, kind, start=0):
        """The number the next :meth:`allocate` would return."""
        query = select(counters.c.last_value).where(self._match(owner_id, kind))
        with self.engine.connect() as conn:
            last = conn.execute(query).scalar()
        return (start if last is None else last) + 1

    def _find(self, owner_id, kind, condition):
        query = select(issued.c.number, issued.c.issue_date).where(
            (issued.c.owner_id == owner_id) & (issued.c.kind == DocumentKind(kind).value) & condition
        )
        with self.engine.connect() as conn:
            row = conn.execute(query).first()
        return None if row is None else IssuedNumber(row.number, row.issue_date)

    def find_by_key(self, owner_id, kind, idempotency_key):
        """The number an earlier request with this key received, or None."""
        if not idempotency_key:
            return None
        return self._find(owner_id, kind, issued.c.idempotency_key == idempotency_key)

    def find_issued(self, owner_id, kind, number):
        return self._find(owner_id, kind, issued.c.number == number)

    def register(self, owner_id, kind, number, issue_date, idempotency_key=None):
        """Record a committed number.

        When a concurrent request with the same idempotency key registered
        first, its entry is returned instead and ``number`` stays unused.
        """
        kind = DocumentKind(kind)
        try:
            with self.engine.begin() as conn:
                conn.execute(
                    insert(issued).values(
                        owner_id=owner_id,
                        kind=kind.value,
                        number=number,
                        issue_date=issue_date,
                        idempotency_key=idempotency_key or None,
                    )
                )
        except IntegrityError:
            existing = self.find_by_key(owner_id, kind, idempotency_key) or self.find_issued(owner_id, kind, number)
            if existing is None:
                raise
            logger.warning("%s number %s was already registered as %s", kind.value, number, existing.number)
            return existing
        return IssuedNumber(number, issue_date)
