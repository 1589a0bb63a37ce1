"""Error taxonomy for sponsor report runs."""


class SponsorReportError(Exception):
    """Base class for sponsor report failures."""


class ConfigurationError(SponsorReportError):
    """The run cannot start: missing credentials, owner, or input events."""


class DataIntegrityError(SponsorReportError):
    """A sponsorship event is missing data the aggregation depends on."""


class SponsorFetchError(SponsorReportError):
    """A sponsorship page could not be fetched from GitHub."""


class HistoryLookupMiss(SponsorReportError):
    """A previously persisted snapshot exists but cannot be read.

    Non-fatal: the merger logs it and keeps the freshly computed snapshot.
    """
