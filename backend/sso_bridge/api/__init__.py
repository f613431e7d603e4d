"""API routers for the SSO bridge."""
