"""Stripe Checkout purchase flow: pricing, checkout sessions and account fulfilment."""
