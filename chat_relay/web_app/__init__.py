"""HTTP surface for the chat relay."""

from .app import CHAT_PATH, create_app
from .dev_proxy import dev_upstream_url, rewrite_dev_path

__all__ = ["CHAT_PATH", "create_app", "dev_upstream_url", "rewrite_dev_path"]
