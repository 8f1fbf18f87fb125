"""Queue worker that turns uploaded demo sessions into ingested analysis results."""

__version__ = "0.1.0"
