"""Parse combined label selectors of the form ``key1=value1,key2=value2``."""

from typing import Mapping

from .errors import InvalidSelectorSyntax

ENTRY_DELIMITER = ","
KEY_VALUE_DELIMITER = "="

# Each entry must split into exactly a key and a value
EXPECTED_SELECTOR_TOKENS = 2


def parse_label_selectors(
    combined: str,
    entry_delimiter: str = ENTRY_DELIMITER,
    kv_delimiter: str = KEY_VALUE_DELIMITER,
) -> dict[str, str]:
    """Parse a combined selector string into a label mapping.

    Parsing is all-or-nothing: the first malformed entry raises and nothing
    is returned. A key or value containing ``kv_delimiter`` is malformed.
    When a key repeats, the last value wins.

    Args:
        combined: Selector string, e.g. ``app=efs-csi-node,tier=storage``
        entry_delimiter: Separator between entries
        kv_delimiter: Separator between a key and its value

    Returns:
        Mapping of label keys to values

    Raises:
        InvalidSelectorSyntax: If any entry is malformed (including empty input)
    """
    selectors: dict[str, str] = {}
    for token in combined.split(entry_delimiter):
        parts = token.split(kv_delimiter)
        if len(parts) != EXPECTED_SELECTOR_TOKENS or not parts[0]:
            raise InvalidSelectorSyntax(combined, token)
        key, value = parts
        selectors[key] = value
    return selectors


def format_label_selectors(
    selectors: Mapping[str, str],
    entry_delimiter: str = ENTRY_DELIMITER,
    kv_delimiter: str = KEY_VALUE_DELIMITER,
) -> str:
    """Join a label mapping back into a combined selector string."""
    return entry_delimiter.join(
        f"{key}{kv_delimiter}{value}" for key, value in selectors.items()
    )
