"""PhotoFeed: a bounded JSON feed of images uploaded to a storage folder."""

__version__ = "0.1.0"
