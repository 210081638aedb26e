"""hostdeploy - push a containerized app to a single host and verify it."""

__version__ = "1.0.0"
