"""bookmark_feeds - track syndication feeds behind a bookmark list.

Discovers which bookmarked pages publish an RSS/Atom/RDF feed, refreshes
those feeds concurrently and reports articles the user has not read yet.
"""

__version__ = "1.0.0"
