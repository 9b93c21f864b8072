from __future__ import annotations

from dataclasses import dataclass, field

from ..validation import LineInput, ValidationError


@dataclass
class LineMatch:
    """Incoming lines matched against a transaction's stored items."""
    updated: list[tuple[object, LineInput]] = field(default_factory=list)
    added: list[LineInput] = field(default_factory=list)
    removed: list[object] = field(default_factory=list)


def match_lines(current_items, lines: list[LineInput], owner: str) -> LineMatch:
    """
    Pair lines carrying an item id with the stored item; lines without an id
    are new, stored items not referenced are removed.

    An id that belongs to another transaction (or is repeated) is rejected.
    """
    by_id = {item.id: item for item in current_items}
    match = LineMatch()
    seen: set[int] = set()

    for line in lines:
        if line.id is None:
            match.added.append(line)
            continue
        if line.id in seen:
            raise ValidationError(f"Item {line.index}: item id {line.id} is repeated")
        item = by_id.get(line.id)
        if item is None:
            raise ValidationError(f"Item {line.index}: item {line.id} does not belong to {owner}")
        seen.add(line.id)
        match.updated.append((item, line))

    match.removed = [item for item in current_items if item.id not in seen]
    return match
