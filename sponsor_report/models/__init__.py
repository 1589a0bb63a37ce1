"""Sponsorship records"""

from sponsor_report.models.sponsorship import SponsorshipEvent, SponsorSnapshot

__all__ = [
    "SponsorshipEvent",
    "SponsorSnapshot",
]
