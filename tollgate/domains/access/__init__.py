"""Access-control domain: permissions, grants, checks and reference filters."""
