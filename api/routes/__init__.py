"""
API Routes for the Intent Router.
"""

from . import chat

__all__ = ["chat"]
