"""Command surface for Simple Notes."""
