"""Tributary: incremental activity-event ingestion into columnar and graph stores."""
