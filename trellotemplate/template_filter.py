"""Select which template lists get copied."""

from __future__ import annotations

from collections.abc import Collection, Iterable

from trellotemplate.exceptions import EmptyTemplateError


def sort_by_position(items: Iterable[dict]) -> list[dict]:
    """Return lists or cards ordered by their Trello ``pos``, lowest first."""
    return sorted(items, key=lambda item: item.get("pos", 0))


def is_selected(list_name: str, names: Collection[str], ignore_named: bool) -> bool:
    """Decide whether a template list is copied.

    With ``ignore_named`` off only the named lists are copied; with it on,
    every list except the named ones is.
    """
    if ignore_named:
        return list_name not in names
    return list_name in names


def filter_template_lists(
    lists: Iterable[dict], names: Collection[str], ignore_named: bool
) -> list[dict]:
    """Sort template lists by position and keep the ones to copy

    Args:
        lists: Lists on the template board, in any order
        names: Configured list names
        ignore_named: Copy everything except ``names`` instead of only ``names``

    Returns:
        Selected lists in position order

    Raises:
        EmptyTemplateError: If nothing would be copied
    """
    selected = [
        lst for lst in sort_by_position(lists) if is_selected(lst["name"], names, ignore_named)
    ]
    if not selected:
        raise EmptyTemplateError("No lists will be copied from the template board")
    return selected
