"""Partial update helper shared by the resource services."""

from pydantic import BaseModel


def apply_partial_update(record, data: BaseModel, nullable: frozenset[str] = frozenset()) -> list[str]:
    """Copy the fields the client actually sent onto ``record``.

    Omitted fields are left untouched. An explicit ``null`` is applied only
    to fields listed in ``nullable`` (clearing the stored value) and ignored
    for the others. Returns the names of the fields that were written.
    """
    changed = []
    for key, value in data.model_dump(exclude_unset=True).items():
        if value is None and key not in nullable:
            continue
        setattr(record, key, value)
        changed.append(key)
    return changed
