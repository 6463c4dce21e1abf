"""Exceptions raised for caller programming errors and broken static data."""


class NfpCheckError(Exception):
    """Base class for nfpcheck exceptions."""


class LabelDataError(NfpCheckError, ValueError):
    """Label input is structurally malformed (not a regulatory finding)."""


class CatalogError(NfpCheckError):
    """A static reference table could not be loaded or is inconsistent."""
