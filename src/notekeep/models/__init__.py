"""Data models for the Notekeep server."""
