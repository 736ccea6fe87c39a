"""Protocol-wide constants shared by the producer and the collector."""

TOTAL_FILE_COUNT_HEADER: str = "TOTAL_FILE_COUNT"
CURRENT_FILE_COUNTER_HEADER: str = "CURRENT_FILE_COUNTER"
CHECKSUM_HEADER: str = "checksum"
CONTENT_ENCODING_HEADER: str = "Content-Encoding"
GZIP_ENCODING: str = "gzip"

# Source files are named <anything>@<sequenceToken>
SEQUENCE_DELIMITER: str = "@"

UPLOAD_PATH: str = "/up"
DEFAULT_PORT: int = 8282

STREAM_PIECE_SIZE_BYTES: int = 64 * 1024
PIPE_BUFFER_PIECES: int = 4
# zlib window bits selecting the gzip container
GZIP_WBITS: int = 31

SHUTDOWN_GRACE_PERIOD_SECONDS: float = 30.0
