"""
Billing package - package catalog, usage metering, quota enforcement and the
subscription lifecycle.

This package integrates with:
- Stripe: checkout, customer portal and subscription webhooks

Usage is derived live from the directory; nothing is metered separately.
"""
