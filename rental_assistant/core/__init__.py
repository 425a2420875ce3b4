"""
Core modules for Rental Assistant.

This package contains the session orchestration, pricing and cost
tracking, and prompt construction.
"""
