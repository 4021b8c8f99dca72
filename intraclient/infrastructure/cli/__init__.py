"""Terminal rendering for the command line interface."""
