"""Service layer for the Notekeep server."""
