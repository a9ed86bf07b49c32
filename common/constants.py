"""Project-wide constants (chunk sizes, ports, stream piece sizes)."""

DEFAULT_PORT: int = 4000

CLIENT_CHUNK_SIZE_BYTES: int = 1024 * 1024  # 1 MiB, matches the upload client
MAX_CHUNK_SIZE_BYTES: int = 16 * 1024 * 1024
STREAM_PIECE_SIZE_BYTES: int = 64 * 1024

CHUNK_FILE_SUFFIX: str = ".chk"
MANIFEST_FILENAME: str = "manifest.json"

RECENT_UPLOADS_DEFAULT_LIMIT: int = 20
RECENT_UPLOADS_MAX_LIMIT: int = 100
