"""Development-only path rewrite onto the upstream completions endpoint."""

from __future__ import annotations

from typing import Optional


def rewrite_dev_path(path: str, prefix: str, target_path: str) -> Optional[str]:
    """Map any path under ``prefix`` to ``target_path``.

    Returns ``None`` for paths outside the prefix. ``/api/chat`` and
    ``/api/chat/anything`` both match the ``/api/chat`` prefix, while
    ``/api/chatter`` does not.
    """

    prefix = "/" + prefix.strip("/")
    if path != prefix and not path.startswith(prefix + "/"):
        return None
    return "/" + target_path.lstrip("/")


def dev_upstream_url(path: str, *, prefix: str, base_url: str, target_path: str) -> Optional[str]:
    rewritten = rewrite_dev_path(path, prefix, target_path)
    if rewritten is None:
        return None
    return base_url.rstrip("/") + rewritten


__all__ = ["dev_upstream_url", "rewrite_dev_path"]
