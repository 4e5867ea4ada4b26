"""Custom exceptions for the run history store."""


class HistoryError(Exception):
    """A run could not be written to or read from the history database."""
