"""Shared helpers for the load-test suites and the live target."""
