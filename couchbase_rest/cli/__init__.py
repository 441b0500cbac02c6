"""`cbrest` command-line interface."""
