"""Helper utilities for the SSO bridge."""
