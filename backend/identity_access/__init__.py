"""Identity & access: roles, permissions, users and sessions."""
