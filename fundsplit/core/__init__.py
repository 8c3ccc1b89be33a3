"""Core distribution, auction and storage components."""
