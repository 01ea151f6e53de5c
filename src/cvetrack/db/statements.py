"""Dialect-aware INSERT constructs with ON CONFLICT support."""

from sqlalchemy.dialects import postgresql, sqlite

_INSERTS = {
    "sqlite": sqlite.insert,
    "postgresql": postgresql.insert,
}


def upsert_insert(bind, table):
    """Return an ``INSERT`` for ``table`` that supports ``on_conflict_*`` clauses.

    ``bind`` is an Engine or Connection; only its dialect is used.
    """
    name = bind.dialect.name
    try:
        return _INSERTS[name](table)
    except KeyError:
        raise NotImplementedError(f"Conflict-aware inserts are not supported on {name!r}") from None
