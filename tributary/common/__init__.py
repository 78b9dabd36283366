"""Shared helpers used across Tributary packages."""
