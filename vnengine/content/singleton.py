from __future__ import annotations

from vnengine.content.registry import ContentPack


_CONTENT: ContentPack | None = None


def init_content(pack: ContentPack) -> ContentPack:
    """Register the content pack once and cache it.

    Safe to call multiple times; subsequent calls return the already registered pack.
    """

    global _CONTENT
    if _CONTENT is None:
        _CONTENT = pack
    return _CONTENT


def reset_content_for_tests() -> None:
    """Reset the cached content pack.

    This is intended for tests so they can register their own fixture packs.
    """

    global _CONTENT
    _CONTENT = None


def get_content() -> ContentPack:
    if _CONTENT is None:
        raise RuntimeError("Content not initialized. Call init_content() at startup.")
    return _CONTENT
