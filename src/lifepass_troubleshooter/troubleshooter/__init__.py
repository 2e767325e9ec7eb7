"""Core troubleshooter package: configuration, logging, telemetry and the CLI."""
