"""CLI entry point."""

import argparse
import os
from pathlib import Path
from typing import List, Optional

from common.logging_config import setup_logging
from cli.config import Config
from cli.transfer_client import TransferClient
from cli.utils import print_progress


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="adaptive-transfer",
        description="Upload files in chunks, download them by id and list recent uploads.",
    )
    parser.add_argument('--debug', action='store_true', help="Enable debug logging")
    parser.add_argument('--config', type=Path, default=None, help="Path to config JSON file")
    parser.add_argument('--server', default=None, help="Server as host:port (overrides config)")

    subparsers = parser.add_subparsers(dest='command', required=True)

    upload = subparsers.add_parser('upload', help="Upload a file")
    upload.add_argument('file', help="File to upload")
    upload.add_argument('--chunk-size', type=int, default=None, help="Chunk size in bytes")

    download = subparsers.add_parser('download', help="Download a file by id")
    download.add_argument('id', help="Artifact id from the download link")
    download.add_argument('--output', '-o', default='.', help="Directory to write into")

    stats = subparsers.add_parser('stats', help="List recent uploads")
    stats.add_argument('--limit', type=int, default=20, help="Maximum number of uploads to list")

    return parser


def apply_overrides(config: Config, args: argparse.Namespace) -> None:
    if args.server:
        host, _, port = args.server.partition(':')
        config.data['server_host'] = host
        if port:
            config.data['server_port'] = int(port)
    if getattr(args, 'chunk_size', None):
        config.data['chunk_size'] = args.chunk_size


def run(args: argparse.Namespace, client: TransferClient) -> str:
    if args.command == 'upload':
        return client.upload_file(args.file, progress=print_progress)
    if args.command == 'download':
        return client.download(args.id, args.output)
    return client.recent_uploads(args.limit)


def main(argv: Optional[List[str]] = None) -> None:
    """Entry point for CLI."""
    args = build_parser().parse_args(argv)

    log_level = 'DEBUG' if args.debug else os.getenv('LOG_LEVEL', 'WARNING')
    logger = setup_logging('cli', log_level=log_level)

    config = Config(args.config)
    apply_overrides(config, args)

    client = TransferClient(config)
    try:
        print(run(args, client))
    except Exception as e:
        logger.error(f"CLI error: {e}", exc_info=True)
        raise
    finally:
        client.close()


if __name__ == "__main__":
    main()
