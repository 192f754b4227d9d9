"""
Backend package for the Recipe Simplifier API.

This package provides a FastAPI application that parses recipe pages,
tracks daily usage, keeps the premium cookbook, and mirrors Stripe
subscriptions into the database.
"""
