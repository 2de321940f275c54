"""Shared configuration, paths, and error types."""
