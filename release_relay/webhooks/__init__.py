"""Webhook inbound system.

Receives signed package events from the container registry.
Each delivery is signature-verified, decoded and appended to the metadata store.
"""
