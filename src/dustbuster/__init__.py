"""dustbuster - cross-platform cleanup of temporary files and caches."""

__version__ = "0.3.0"
