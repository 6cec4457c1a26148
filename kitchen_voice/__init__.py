"""
                Kitchen Voice Command Service

Voice and text command layer that lets restaurant staff manage orders
and query the menu with natural-language utterances, backed by a hosted
language model with deterministic fallbacks.

Version: 4.0.0
License: MIT
"""

__version__ = "4.0.0"
