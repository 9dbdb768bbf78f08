"""SEO metadata scoring and performance alert monitoring."""

__version__ = "1.0.0"
