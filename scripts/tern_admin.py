#!/usr/bin/env python3
"""
Tern site admin script
Query firmware, download binaries, convert files and place firmware overrides.
"""

import argparse
import json
import logging
import shutil
import sys
from pathlib import Path
from urllib.parse import unquote

import requests

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

FIRMWARE_PREFIX = "tern-fw-"
FIRMWARE_SUFFIX = ".bin"


class TernClient:
    """Client for a running tern site."""

    def __init__(self, server_url: str, timeout: float = 60.0):
        """Initialize client.

        Args:
            server_url: Base URL of the service
            timeout: Per-request timeout in seconds
        """
        self.server_url = server_url.rstrip('/')
        self.timeout = timeout

    def _get(self, path: str, **kwargs) -> requests.Response:
        response = requests.get(f"{self.server_url}{path}", timeout=self.timeout, **kwargs)
        if response.status_code != 200:
            raise RuntimeError(f"GET {path} failed ({response.status_code}): {response.text}")
        return response

    def _post_file(self, path: str, file_path: Path, data: dict) -> bytes:
        with open(file_path, 'rb') as f:
            response = requests.post(
                f"{self.server_url}{path}",
                files={'file': (file_path.name, f)},
                data=data,
                timeout=self.timeout,
            )
        if response.status_code != 200:
            raise RuntimeError(f"POST {path} failed ({response.status_code}): {response.text}")
        return response.content

    def info(self) -> dict:
        return self._get("/api/info").json()

    def latest(self) -> dict:
        """Get the latest firmware description."""
        return self._get("/api/firmware/latest").json()

    def download(self, output_dir: Path, verify_size: bool = True) -> Path:
        """Download the latest firmware binary.

        Args:
            output_dir: Directory to save into
            verify_size: Compare the download against the size reported by /latest

        Returns:
            Path of the saved file
        """
        latest = self.latest()
        response = self._get(latest["download_path"])
        filename = _attachment_name(response.headers.get("Content-Disposition")) or latest["asset_name"]

        if verify_size and len(response.content) != latest["size"]:
            raise RuntimeError(
                f"Size mismatch for {filename}: got {len(response.content)}, expected {latest['size']}"
            )

        output_dir.mkdir(parents=True, exist_ok=True)
        target = output_dir / Path(filename).name
        target.write_bytes(response.content)
        logger.info(
            f"✓ Saved {target} ({len(response.content)} bytes, "
            f"source: {response.headers.get('X-Firmware-Source', 'unknown')})"
        )
        return target

    def convert_image(self, image_path: Path, output: Path, **options) -> Path:
        data = {key: str(value).lower() if isinstance(value, bool) else str(value)
                for key, value in options.items() if value is not None}
        output.write_bytes(self._post_file("/api/convert/image", image_path, data))
        logger.info(f"✓ Converted {image_path.name} -> {output}")
        return output

    def convert_book(self, epub_path: Path, output: Path, sizes: str, font: str) -> Path:
        output.write_bytes(
            self._post_file("/api/convert/book", epub_path, {'sizes': sizes, 'font': font})
        )
        logger.info(f"✓ Converted {epub_path.name} -> {output}")
        return output


def _attachment_name(disposition: str | None) -> str | None:
    if not disposition:
        return None
    plain = None
    for part in disposition.split(";"):
        key, _, value = part.strip().partition("=")
        key = key.strip().lower()
        if key == "filename*" and value.lower().startswith("utf-8''"):
            return unquote(value[len("utf-8''"):]) or None
        if key == "filename":
            plain = value.strip().strip('"') or None
    return plain


def place_override(binary_path: Path, cache_dir: Path, tag: str) -> Path:
    """Copy a firmware file into the cache directory as an operator override."""
    if not binary_path.is_file():
        raise FileNotFoundError(f"File not found: {binary_path}")
    if not tag or "/" in tag or "\\" in tag:
        raise ValueError(f"Invalid tag: {tag!r}")

    cache_dir.mkdir(parents=True, exist_ok=True)
    target = cache_dir / f"{FIRMWARE_PREFIX}{tag}{FIRMWARE_SUFFIX}"
    temp = target.with_name(f"tmp-{target.name}.part")
    shutil.copyfile(binary_path, temp)
    temp.replace(target)
    logger.info(f"✓ Override {target.name} placed in {cache_dir}")
    return target


def main():
    parser = argparse.ArgumentParser(description='Tern site admin tool')
    parser.add_argument('--server', default='http://localhost:8000', help='Service base URL')
    parser.add_argument('--timeout', type=float, default=60.0, help='Request timeout (seconds)')

    subparsers = parser.add_subparsers(dest='command', help='Command')

    subparsers.add_parser('info', help='Show service info')
    subparsers.add_parser('latest', help='Show latest firmware')

    download_parser = subparsers.add_parser('download', help='Download latest firmware')
    download_parser.add_argument('--output-dir', default='.', help='Directory to save into')
    download_parser.add_argument('--no-verify', action='store_true', help='Skip size check')

    image_parser = subparsers.add_parser('convert-image', help='Convert an image to .tri')
    image_parser.add_argument('file', help='Image file')
    image_parser.add_argument('--output', default='converted.tri')
    image_parser.add_argument('--fit', default='width',
                              choices=['width', 'contain', 'cover', 'stretch', 'integer'])
    image_parser.add_argument('--dither', default='bayer', choices=['bayer', 'none'])
    image_parser.add_argument('--region', default='auto', choices=['auto', 'none', 'crisp', 'barcode'])
    image_parser.add_argument('--invert', action='store_true')
    image_parser.add_argument('--trimg-version', type=int, default=2, choices=[1, 2])

    book_parser = subparsers.add_parser('convert-book', help='Convert an EPUB to .trbk')
    book_parser.add_argument('file', help='EPUB file')
    book_parser.add_argument('--output', default='converted.trbk')
    book_parser.add_argument('--sizes', default='24', help='Comma-separated font sizes')
    book_parser.add_argument('--font', default='bookerly')

    override_parser = subparsers.add_parser('place-override', help='Install a local firmware override')
    override_parser.add_argument('file', help='Firmware .bin file')
    override_parser.add_argument('--tag', required=True, help='Firmware tag (e.g., v1.3.0-rc)')
    override_parser.add_argument('--cache-dir', default='cache', help='Service cache directory')

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    client = TernClient(args.server, timeout=args.timeout)

    try:
        if args.command == 'info':
            print(json.dumps(client.info(), indent=2))
        elif args.command == 'latest':
            print(json.dumps(client.latest(), indent=2))
        elif args.command == 'download':
            client.download(Path(args.output_dir), verify_size=not args.no_verify)
        elif args.command == 'convert-image':
            client.convert_image(
                Path(args.file),
                Path(args.output),
                fit=args.fit,
                dither=args.dither,
                region=args.region,
                invert=args.invert,
                trimg_version=args.trimg_version,
                output_name=Path(args.output).name,
            )
        elif args.command == 'convert-book':
            client.convert_book(Path(args.file), Path(args.output), args.sizes, args.font)
        elif args.command == 'place-override':
            place_override(Path(args.file), Path(args.cache_dir), args.tag)
    except (RuntimeError, ValueError, OSError, requests.RequestException) as e:
        logger.error(f"✗ {e}")
        sys.exit(1)


if __name__ == '__main__':
    main()
