"""Lookup keys for artist and track names."""


def name_key(name: str) -> str:
    """
    Case-insensitive lookup key for a display name.

    Hey future me - this MUST be the only fold used anywhere. SQLite's NOCASE
    only folds ASCII, so "Björk" and "BJÖRK" were two artists in the store
    but one in the in-memory deduplicator. casefold() also maps "ß" to "ss".
    """
    return name.casefold()
