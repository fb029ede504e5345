"""tokenvest command-line interface."""
