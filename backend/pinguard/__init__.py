"""pinguard: PIN lock and inactivity guard for the savings web app."""

__version__ = "0.1.0"
