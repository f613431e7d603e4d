"""DiscourseConnect SSO bridge issuing signed session tokens."""
