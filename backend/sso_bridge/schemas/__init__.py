"""Response schemas for the SSO bridge."""
