"""mongo-migrate command-line interface."""
