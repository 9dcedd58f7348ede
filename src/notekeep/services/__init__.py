"""Service layer for notekeep collections."""
