# hn_digest/errors.py
"""
Exceptions raised by the external collaborators (feed, extractor, summarizer,
sender) and by configuration loading. The digest pipeline catches these per
stage and decides whether to skip, fall back or abort.
"""


class DigestError(Exception):
    """Base class for everything this package raises on purpose."""


class ConfigError(DigestError):
    pass


class FeedError(DigestError):
    """Hacker News could not be reached or returned something unusable."""


class ItemNotFoundError(FeedError):
    def __init__(self, item_id: int):
        super().__init__(f"item {item_id} not found")
        self.item_id = item_id


class ExtractionError(DigestError):
    pass


class SummaryError(DigestError):
    """The model call failed or its output could not be parsed."""


class DeliveryError(DigestError):
    pass
