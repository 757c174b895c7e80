class ExporterError(Exception):
    """Base class for exporter errors."""


class StartupError(ExporterError):
    """Exporter cannot start (missing credential, unusable directory, bad config)."""


class InventoryError(ExporterError):
    """Kopia could not be run or exited with an error."""

    def __init__(self, message, output=b"", returncode=None):
        super().__init__(message)
        self.output = output
        self.returncode = returncode

    def output_text(self):
        if isinstance(self.output, bytes):
            return self.output.decode("utf-8", errors="replace").strip()
        return (self.output or "").strip()


class ParseError(ExporterError):
    """Snapshot inventory output could not be decoded."""
