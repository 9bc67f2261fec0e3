"""Webhook verification and handling."""
