"""
File storage for uploaded images.

This module provides functionality for:
- Preparing upload directories
- Writing accepted uploads under a non-colliding name and assigning file ids
- Mirroring stored files to S3 when a bucket is configured

The S3 bucket name is configured via the S3_BUCKET_NAME environment variable.
When running locally without AWS credentials, S3 operations are skipped gracefully.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from threading import Lock
from typing import Dict, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from dotenv import load_dotenv

from .utils import ensure_directory, sanitize_filename, unique_destination

# Load environment variables from .env file
load_dotenv()

logger = logging.getLogger(__name__)

# S3 bucket name from environment variable
S3_BUCKET_NAME = os.environ.get("S3_BUCKET_NAME", "")

# S3 client (lazy initialization)
_s3_client = None


def _get_s3_client():
    """
    Get or create the S3 client.

    Returns:
        boto3 S3 client or None if bucket is not configured
    """
    global _s3_client
    if _s3_client is None:
        if not S3_BUCKET_NAME:
            return None
        try:
            _s3_client = boto3.client("s3")
        except BotoCoreError as e:
            logger.warning(f"Failed to create S3 client: {e}")
            _s3_client = None
    return _s3_client


def is_s3_configured() -> bool:
    """True if an S3 bucket is configured and a client could be created."""
    return bool(S3_BUCKET_NAME) and _get_s3_client() is not None


def upload_to_s3(path: Path, s3_key: str) -> bool:
    """
    Upload a stored file to S3.

    Returns:
        True if upload was successful, False otherwise

    Note:
        If S3 credentials are not available or bucket is not configured,
        this function returns False without raising an exception.
    """
    client = _get_s3_client()
    if client is None:
        logger.debug("S3 not configured, skipping upload")
        return False

    try:
        logger.info(f"Uploading {path} to s3://{S3_BUCKET_NAME}/{s3_key}")
        client.upload_file(str(path), S3_BUCKET_NAME, s3_key)
        return True
    except (BotoCoreError, ClientError) as e:
        logger.error(f"S3 upload failed: {e}")
        return False


@dataclass
class FileRecord:
    fid: int
    filename: str
    path: Path
    url: str
    size: int
    s3_key: Optional[str] = None


class FileStorage:
    """
    Stores uploaded files below ``upload_root`` and hands out file ids.

    Files are served under ``files_url``, mirroring their path relative to
    ``upload_root``.
    """

    def __init__(self, upload_root: Path, files_url: str = "/files") -> None:
        self.upload_root = upload_root
        self.files_url = files_url.rstrip("/")
        self._files: Dict[int, FileRecord] = {}
        self._next_fid = 1
        self._lock = Lock()

    def prepare_directory(self, directory: str) -> Optional[Path]:
        """Create the destination directory, or return None if that is impossible."""
        destination = (self.upload_root / directory).resolve()
        if not destination.is_relative_to(self.upload_root.resolve()):
            logger.warning(f"Refusing destination outside upload root: {directory}")
            return None
        try:
            return ensure_directory(destination)
        except OSError as exc:
            logger.warning(f"Could not create {destination}: {exc}")
            return None

    def save(self, directory: Path, filename: str, content: bytes) -> FileRecord:
        with self._lock:
            destination = unique_destination(directory, sanitize_filename(filename))
            destination.write_bytes(content)
            fid = self._next_fid
            self._next_fid += 1

            relative = destination.relative_to(self.upload_root.resolve()).as_posix()
            record = FileRecord(
                fid=fid,
                filename=destination.name,
                path=destination,
                url=f"{self.files_url}/{relative}",
                size=len(content),
            )
            self._files[fid] = record

        logger.info(f"Stored file {fid} at {destination}")
        if is_s3_configured():
            s3_key = f"quickedit/{relative}"
            if upload_to_s3(destination, s3_key):
                record.s3_key = s3_key
        return record

    def get(self, fid: Optional[int]) -> Optional[FileRecord]:
        if fid is None:
            return None
        with self._lock:
            return self._files.get(fid)
