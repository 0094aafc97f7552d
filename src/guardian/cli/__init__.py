"""Guardian command line interface."""
