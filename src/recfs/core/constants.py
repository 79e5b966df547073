"""
Record framing constants and stream defaults.
"""
import struct

# Proto framing: uint32 big-endian payload length before every message
PROTO_HEADER_STRUCT = struct.Struct(">I")
PROTO_HEADER_SIZE = PROTO_HEADER_STRUCT.size  # 4 bytes
MAX_PROTO_MESSAGE_SIZE = (1 << 32) - 1

# JSON framing: one value per line
JSON_RECORD_SEPARATOR = b"\n"

# CSV framing
CSV_DELIMITER = ","
CSV_LINE_TERMINATOR = "\n"
CSV_ENCODING = "utf-8"
# Largest cell accepted on read; fits a C long on every platform
CSV_FIELD_SIZE_LIMIT = (1 << 31) - 1

# Buffered I/O (default: 64 KiB)
DEFAULT_BUFFER_SIZE = 64 * 1024
MIN_BUFFER_SIZE = 4 * 1024

# Compression
GZIP_SUFFIX = ".gz"
DEFAULT_COMPRESS_LEVEL = 6

# Format names used in logs, metrics and CLI
FORMAT_JSON = "json"
FORMAT_PROTO = "proto"
FORMAT_CSV = "csv"
FORMATS = (FORMAT_JSON, FORMAT_PROTO, FORMAT_CSV)
