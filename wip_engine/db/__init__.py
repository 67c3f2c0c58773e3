"""Database session and declarative base."""
