"""gapfill: fills the free time in a traveller's day with ranked activity suggestions."""

__version__ = "0.3.0"
