"""Built-in external step sources."""
