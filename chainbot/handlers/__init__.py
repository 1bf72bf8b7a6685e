"""Built-in chains shipped with the default application."""
