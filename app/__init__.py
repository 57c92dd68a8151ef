"""Relay of Intercom ticket events to Lark chat groups."""
