"""cmdproxy - transparent command proxy with opt-in compiler telemetry."""

__version__ = "0.4.0"
