"""Inline reply, quote and edit support for forum discussions."""

from .version import API_VERSION

__version__ = API_VERSION
