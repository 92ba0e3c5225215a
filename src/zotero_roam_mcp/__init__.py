"""Stand-in word-processor endpoint that turns Zotero picks into org-roam notes."""

__version__ = "0.1.0"
