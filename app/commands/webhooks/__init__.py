"""Webhook command handlers."""

from app.commands.webhooks.intercom_command import IntercomWebhookCommand

__all__ = ["IntercomWebhookCommand"]
