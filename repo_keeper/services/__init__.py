"""Services for repo-keeper."""
