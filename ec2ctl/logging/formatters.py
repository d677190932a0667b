"""Logging formatters for stream routing."""

import logging


class StreamFormatter(logging.Formatter):
    """Logging formatter that tags warnings and errors routed to stderr."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record, prefixing the level for stderr diagnostics.

        Parameters
        ----------
        record : logging.LogRecord
            Log record to format

        Returns
        -------
        str
            Formatted log message
        """
        msg = super().format(record)
        stream = getattr(record, "stream", None)

        if stream == "stdout":
            return msg

        if record.levelno >= logging.WARNING:
            return f"{record.levelname.lower()}: {msg}"

        return msg
