"""tagweave — keep projects in UUID-addressed storage, browse them through tag-built symlink trees."""

__version__ = "0.1.0"
