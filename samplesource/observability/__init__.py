"""Logging and Prometheus metrics for the SampleSource controller."""
