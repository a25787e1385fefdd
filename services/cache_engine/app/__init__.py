"""Cache engine application package."""
