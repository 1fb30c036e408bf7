"""Split long text into chunks that fit a chat transport's message limit."""

from __future__ import annotations


def split_message(text: str, max_length: int) -> list[str]:
    """Split ``text`` into ordered chunks of at most ``max_length`` characters.

    Breaks at the last newline inside the window, unless that newline sits in
    the first half of the window, in which case the last space is used. With
    neither available the text is cut at exactly ``max_length``. Whitespace
    around each break point is dropped.

    >>> split_message("AAAA\\nBBBB", 6)
    ['AAAA', 'BBBB']
    """
    if max_length <= 0:
        raise ValueError(f"max_length must be positive, got {max_length}")

    chunks: list[str] = []
    remaining = text

    while remaining:
        if len(remaining) <= max_length:
            chunks.append(remaining)
            break

        break_point = remaining.rfind("\n", 0, max_length + 1)
        if break_point == -1 or break_point < max_length / 2:
            break_point = remaining.rfind(" ", 0, max_length + 1)
        if break_point <= 0:
            # no usable separator; a break at 0 would emit an empty chunk
            break_point = max_length

        chunks.append(remaining[:break_point])
        remaining = remaining[break_point:].strip()

    return chunks
