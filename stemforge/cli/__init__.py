"""stemforge command-line interface."""
