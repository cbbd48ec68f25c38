"""HTTP API for transit-backup."""
