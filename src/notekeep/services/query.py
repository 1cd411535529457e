"""Derives the visible note list from the collection and the view state.

Pure functions only: the same inputs always produce the same list, in the
same order.
"""

import unicodedata
from typing import Dict, Iterable, List, Sequence, Tuple, Union

from notekeep.exceptions import ErrorCode, ValidationError
from notekeep.models.schema import Note, SortKey, View, ViewState


def view_of(note: Note) -> View:
    """The single view a note belongs to. Trash wins over archive."""
    if note.deleted:
        return View.TRASH
    if note.archived:
        return View.ARCHIVE
    return View.ACTIVE


def matches_view(note: Note, view: View) -> bool:
    return view_of(note) is view


def matches_search(note: Note, search: str) -> bool:
    """Case-insensitive substring match on title, content or any tag."""
    if not search:
        return True
    needle = search.lower()
    return (
        needle in note.title.lower()
        or needle in note.content.lower()
        or any(needle in tag.lower() for tag in note.tags)
    )


def matches_tag(note: Note, selected_tag: str) -> bool:
    """Exact, case-sensitive tag membership. No tag selected matches all."""
    return not selected_tag or note.has_tag(selected_tag)


def _fold_accents(text: str) -> str:
    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(c for c in decomposed if not unicodedata.combining(c))


def title_collation_key(title: str) -> Tuple[str, str, str]:
    """Dictionary-style ordering for titles.

    Letters compare without accents or case first ("école" files under e,
    next to "Ecole"), then with accents, then as typed.
    """
    folded = title.casefold()
    return (_fold_accents(folded), folded, title)


def sort_notes(notes: Iterable[Note], sort_key: SortKey) -> List[Note]:
    """Order notes by ``sort_key`` with pinned notes first.

    Both passes are stable, so notes that compare equal keep their
    incoming order.
    """
    if sort_key is SortKey.TITLE:
        ordered = sorted(notes, key=lambda n: title_collation_key(n.title))
    elif sort_key is SortKey.CREATED:
        ordered = sorted(notes, key=lambda n: n.created_at, reverse=True)
    else:
        ordered = sorted(notes, key=lambda n: n.updated_at, reverse=True)
    return sorted(ordered, key=lambda n: not n.pinned)


def derive(
    notes: Sequence[Note],
    view: View = View.ACTIVE,
    search: str = "",
    selected_tag: str = "",
    sort_key: SortKey = SortKey.UPDATED,
) -> List[Note]:
    """Filter by view, search text and tag, then sort."""
    visible = [
        note
        for note in notes
        if matches_view(note, view)
        and matches_search(note, search)
        and matches_tag(note, selected_tag)
    ]
    return sort_notes(visible, sort_key)


def derive_for(notes: Sequence[Note], state: ViewState) -> List[Note]:
    """derive() driven by a ViewState."""
    return derive(notes, state.view, state.search, state.selected_tag, state.sort_key)


def all_tags(notes: Iterable[Note]) -> List[str]:
    """Every tag in use, sorted and without duplicates."""
    return sorted({tag for note in notes for tag in note.tags})


def view_counts(notes: Iterable[Note]) -> Dict[View, int]:
    """Number of notes in each view."""
    counts = {view: 0 for view in View}
    for note in notes:
        counts[view_of(note)] += 1
    return counts


def parse_view(value: Union[str, View]) -> View:
    """Turn user input into a View. Accepts "all" and "" as the active view."""
    if isinstance(value, View):
        return value
    normalized = (value or "").strip().lower()
    if normalized in ("", "all"):
        return View.ACTIVE
    try:
        return View(normalized)
    except ValueError:
        raise ValidationError(
            f"Invalid view: {value}. Valid views are: "
            f"{', '.join(v.value for v in View)}",
            field="view",
            value=value,
            code=ErrorCode.INVALID_VIEW,
        ) from None


def parse_sort_key(value: Union[str, SortKey]) -> SortKey:
    """Turn user input into a SortKey."""
    if isinstance(value, SortKey):
        return value
    try:
        return SortKey((value or "").strip().lower())
    except ValueError:
        raise ValidationError(
            f"Invalid sort key: {value}. Valid keys are: "
            f"{', '.join(k.value for k in SortKey)}",
            field="sort_key",
            value=value,
            code=ErrorCode.INVALID_SORT_KEY,
        ) from None
