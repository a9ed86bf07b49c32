"""HTTP client for communicating with the transfer service."""

import time
import uuid
from pathlib import Path
from typing import Callable, Optional
from urllib.parse import unquote

import httpx

from common.logging_config import get_logger
from cli.config import Config
from cli.utils import count_chunks, format_file_size, iter_file_chunks, new_upload_id

logger = get_logger(__name__)

ProgressCallback = Callable[[str, int, int], None]


class TransferClient:
    """HTTP client for the transfer API with per-chunk retry logic."""

    def __init__(self, config: Config):
        """
        Initialize transfer client.

        Args:
            config: Configuration instance
        """
        self.config = config
        self.session = httpx.Client(
            base_url=config.get_base_url(),
            timeout=config.get_timeout()
        )
        self.request_id = None
        logger.debug(f"Initialized TransferClient [base_url={config.get_base_url()}]")

    def close(self) -> None:
        self.session.close()

    def _request_with_retry(
        self,
        method: str,
        endpoint: str,
        max_retries: Optional[int] = None,
        **kwargs
    ) -> httpx.Response:
        """
        Make HTTP request with retry logic on 5xx errors and network failures.

        Args:
            method: HTTP method (GET, POST, etc.)
            endpoint: API endpoint path
            max_retries: Max retry attempts (uses config default if None)
            **kwargs: Additional arguments to pass to httpx request

        Returns:
            HTTP response object

        Raises:
            ConnectionError: If max retries exceeded or connection fails
        """
        retry_config = self.config.get_retry_config()
        max_retries = max_retries if max_retries is not None else retry_config['max_retries']
        backoff = retry_config['retry_backoff_multiplier']

        last_exception = None

        self.request_id = str(uuid.uuid4())
        headers = dict(kwargs.pop('headers', None) or {})
        headers['X-Request-ID'] = self.request_id

        for attempt in range(max_retries + 1):
            try:
                response = self.session.request(method, endpoint, headers=headers, **kwargs)

                logger.debug(
                    f"Response received: {method} {endpoint} status={response.status_code} [request_id={self.request_id}]"
                )

                if response.status_code >= 500 and attempt < max_retries:
                    delay = backoff ** attempt
                    logger.warning(
                        f"Server error (attempt {attempt + 1}/{max_retries + 1}): "
                        f"{method} {endpoint} status={response.status_code}, retrying in {delay}s"
                    )
                    time.sleep(delay)
                    continue

                return response

            except (httpx.ConnectError, httpx.TimeoutException) as e:
                last_exception = e
                if attempt < max_retries:
                    delay = backoff ** attempt
                    logger.warning(
                        f"Network error (attempt {attempt + 1}/{max_retries + 1}): "
                        f"{method} {endpoint} error={type(e).__name__}, retrying in {delay}s"
                    )
                    time.sleep(delay)
                    continue
                logger.error(f"Network error (max retries exceeded): {method} {endpoint} error={e}")

        if isinstance(last_exception, httpx.TimeoutException):
            raise ConnectionError("Request timed out. Server may be overloaded.")
        raise ConnectionError("Cannot connect to transfer server. Is it running?")

    def _format_error(self, response: httpx.Response) -> str:
        """
        Map HTTP errors to user-friendly messages.
        """
        try:
            error_data = response.json()
            detail = error_data.get('detail', 'Unknown error')
            code = error_data.get('code', 'UNKNOWN')
        except ValueError:
            detail = response.text or 'Unknown error'
            code = 'UNKNOWN'

        error_messages = {
            'INVALID_CHUNK': f'Chunk rejected by server: {detail}',
            'STORAGE_WRITE_FAILED': 'Server could not store the chunk. Please try again later.',
            'UPLOAD_INCOMPLETE': 'Upload is incomplete on the server; the whole file must be uploaded again.',
            'ARTIFACT_NOT_FOUND': 'No file with that id exists.',
        }
        if code in error_messages:
            return error_messages[code]

        return f"{detail} (HTTP {response.status_code})"

    def upload_file(
        self,
        file_path: str,
        progress: Optional[ProgressCallback] = None,
    ) -> str:
        """
        Upload a file in chunks, then ask the server to assemble it.

        Args:
            file_path: Local file to upload
            progress: Called as progress(filename, sent_chunks, total_chunks)

        Returns:
            Result message including the download link
        """
        path = Path(file_path)
        if not path.is_file():
            return f"File not found: {file_path}"

        filename = path.name
        file_size = path.stat().st_size
        chunk_size = self.config.get_chunk_size()
        total = count_chunks(file_size, chunk_size)
        upload_id = new_upload_id()

        logger.info(f"Uploading {filename} ({format_file_size(file_size)}) as {total} chunks [upload_id={upload_id}]")

        try:
            for index, data in iter_file_chunks(path, chunk_size):
                response = self._request_with_retry(
                    'POST',
                    '/upload-chunk',
                    data={
                        'upload_id': upload_id,
                        'index': str(index),
                        'total': str(total),
                        'filename': filename,
                    },
                    files={'chunk': (filename, data, 'application/octet-stream')},
                )
                if response.status_code != 200:
                    logger.warning(f"Chunk {index} of {upload_id} rejected: status={response.status_code}")
                    return f"Upload failed at chunk {index + 1}/{total}: {self._format_error(response)}"

                if progress:
                    progress(filename, index + 1, total)

            response = self._request_with_retry(
                'POST',
                '/assemble',
                json={'upload_id': upload_id, 'filename': filename},
                max_retries=0,
            )
        except ConnectionError as e:
            logger.error(f"Connection error during upload: {e}")
            return f"Error: {e}"

        if response.status_code != 201:
            return f"Upload failed: {self._format_error(response)}"

        result = response.json()
        logger.info(f"Upload complete [upload_id={upload_id}] [id={result['id']}]")
        return (
            f"Uploaded {filename} ({format_file_size(file_size)} -> "
            f"{format_file_size(result['size'])}, {result['content_category']})\n"
            f"Download link: {result['download_url']}"
        )

    def download(self, artifact_id: str, output_dir: str = ".") -> str:
        """
        Download an artifact by id into output_dir.

        Returns:
            Result message with the written path
        """
        target_dir = Path(output_dir)
        try:
            with self.session.stream('GET', f'/download/{artifact_id}') as response:
                if response.status_code != 200:
                    response.read()
                    return f"Download failed: {self._format_error(response)}"

                filename = _filename_from_disposition(
                    response.headers.get('content-disposition', ''), artifact_id
                )
                target_dir.mkdir(parents=True, exist_ok=True)
                output_file = target_dir / filename
                written = 0
                with open(output_file, 'wb') as f:
                    for piece in response.iter_bytes():
                        f.write(piece)
                        written += len(piece)
        except (httpx.ConnectError, httpx.TimeoutException) as e:
            logger.error(f"Connection error during download: {e}")
            return "Error: Cannot connect to transfer server. Is it running?"

        return f"Downloaded {filename} ({format_file_size(written)}) to {output_file}"

    def recent_uploads(self, limit: int = 20) -> str:
        """
        Fetch the recent uploads listing.

        Returns:
            Formatted table of uploads
        """
        try:
            response = self._request_with_retry('GET', '/stats', params={'limit': limit})
        except ConnectionError as e:
            return f"Error: {e}"

        if response.status_code != 200:
            return f"Listing failed: {self._format_error(response)}"

        uploads = response.json().get('uploads', [])
        if not uploads:
            return "No uploads yet."

        lines = []
        for upload in uploads:
            lines.append(
                f"{upload['id']}  {upload['filename']}  {format_file_size(upload['size'])}  "
                f"{upload['created_at']}  downloads={upload['download_count']}"
            )
        return "\n".join(lines)


def _filename_from_disposition(header: str, fallback: str) -> str:
    for part in header.split(';'):
        part = part.strip()
        if part.lower().startswith("filename*=utf-8''"):
            name = unquote(part[len("filename*=utf-8''"):])
            return Path(name).name or fallback
        if part.lower().startswith('filename='):
            name = part[len('filename='):].strip('"')
            return Path(name).name or fallback
    return fallback
