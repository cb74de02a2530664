"""Weather station telemetry hub: ingestion, alerts and dashboard queries."""

__version__ = "1.0.0"
