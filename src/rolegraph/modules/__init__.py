"""Admin feature modules: roles, users and groups."""
