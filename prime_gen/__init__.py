"""prime-gen -- schema-driven Angular/PrimeNG module scaffolding."""

__version__ = "0.1.0"
