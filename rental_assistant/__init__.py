"""
Rental Assistant.

Answers questions about a catalog of rental properties through the
OpenAI chat API while tracking per-query cost and latency.
"""

__version__ = "1.0.0"
