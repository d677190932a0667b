"""Logging filters for stream routing."""

import logging


class StreamRoutingFilter(logging.Filter):
    """Filter that routes log records based on stream extra parameter.

    Records without a ``stream`` extra go to stderr so that stdout carries
    only command output (tables, JSON, state changes).

    Parameters
    ----------
    stream_type : str
        Stream type to allow: "stdout" or "stderr"
    """

    def __init__(self, stream_type: str) -> None:
        super().__init__()
        self.stream_type = stream_type

    def filter(self, record: logging.LogRecord) -> bool:
        """Filter log records by stream type.

        Parameters
        ----------
        record : logging.LogRecord
            Log record to filter

        Returns
        -------
        bool
            True if record should be emitted by this handler
        """
        record_stream = getattr(record, "stream", None)

        if record_stream is None:
            return self.stream_type == "stderr"

        return record_stream == self.stream_type
