"""Data models for the notekeep collection manager."""
