"""Admin dashboard: authentication, analytics, browsing and annotation."""
