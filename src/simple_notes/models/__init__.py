"""Data models for Simple Notes."""
