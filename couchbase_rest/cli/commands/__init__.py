"""`cbrest` command groups."""
