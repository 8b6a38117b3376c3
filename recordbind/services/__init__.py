"""Services Layer: the registry that configures the core and the row mapper built on it."""
