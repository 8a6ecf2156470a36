"""
CLI module for the forum inline editing service.

Provides database setup and the server runner.
"""

from forum_inline.cli.manage import main

__all__ = ["main"]
