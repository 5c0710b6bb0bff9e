"""Adapters – storage backends for the event log."""
