"""Chat space webhook connector."""

from connectors.chat.webhook import ChatWebhookClient

__all__ = ["ChatWebhookClient"]
