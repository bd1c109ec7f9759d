"""StrideSync - real-time activity tracking from position samples."""

__version__ = "0.1.0"
