"""
Candidate sources: where invoice PDFs are discovered, checked and copied from.
A local folder tree, an in-memory collection of uploaded files, or an S3 prefix.
"""

import os
import shutil
import logging
from typing import Dict, Iterable, Iterator, List, Optional, Tuple
from boto3.exceptions import RetriesExceededError
from botocore.exceptions import BotoCoreError, ClientError

from .config import DOCUMENT_EXTENSIONS, MAX_WALK_DEPTH
from .models import CandidateFile

logger = logging.getLogger(__name__)


def _has_extension(name: str, extensions: Iterable[str]) -> bool:
    return os.path.splitext(name)[1].lower() in extensions


class LocalFolderSource:
    """
    Folder tree on a local or mounted drive.
    Walks at most ``max_depth`` levels below ``root``; unreadable entries are logged and skipped.
    """

    def __init__(self, root: str, extensions: Iterable[str] = DOCUMENT_EXTENSIONS,
                 max_depth: int = MAX_WALK_DEPTH):
        self.root = str(root)
        self.extensions = {ext.lower() for ext in extensions}
        self.max_depth = max_depth

    @property
    def key(self) -> str:
        return os.path.abspath(self.root)

    def exists(self) -> bool:
        return os.path.isdir(self.root)

    def iter_files(self) -> Iterator[CandidateFile]:
        """
        Yield matching files in discovery order.
        Directory entries are visited in listing order; subfolders are walked
        where they are encountered, using an explicit stack with a carried depth.
        """
        stack: List[Tuple[Iterator[str], str, int]] = []
        entries = self._list_directory(self.root)
        if entries is None:
            return
        stack.append((iter(entries), self.root, 0))

        while stack:
            entries_iter, directory, depth = stack[-1]
            item = next(entries_iter, None)
            if item is None:
                stack.pop()
                continue

            full_path = os.path.join(directory, item)
            try:
                if os.path.isdir(full_path):
                    if depth + 1 > self.max_depth:
                        logger.debug(f"Skipping {full_path}: depth limit {self.max_depth} reached")
                        continue
                    children = self._list_directory(full_path)
                    if children is not None:
                        stack.append((iter(children), full_path, depth + 1))
                elif _has_extension(item, self.extensions):
                    yield CandidateFile(name=item, path=full_path)
            except OSError as e:
                logger.error(f"Error accessing {full_path}: {e}")

    def _list_directory(self, directory: str) -> Optional[List[str]]:
        try:
            return sorted(os.listdir(directory))
        except OSError as e:
            logger.error(f"Error reading folder {directory}: {e}")
            return None

    def stat(self, candidate: CandidateFile) -> int:
        """Return the file size; raises OSError when the file is gone."""
        return os.stat(candidate.path).st_size

    def copy_to(self, candidate: CandidateFile, destination_path: str) -> None:
        shutil.copyfile(candidate.path, destination_path)


class MemorySource:
    """
    Files uploaded by a caller and held in memory.
    ``files`` is a sequence of (name, content) pairs; the name doubles as the path.
    """

    def __init__(self, files: Iterable[Tuple[str, bytes]],
                 extensions: Iterable[str] = DOCUMENT_EXTENSIONS):
        normalized = {ext.lower() for ext in extensions}
        self._contents: Dict[str, bytes] = {}
        for name, content in files:
            if _has_extension(name, normalized):
                self._contents.setdefault(name, content)

    @property
    def key(self) -> str:
        return f"memory:{id(self)}"

    def exists(self) -> bool:
        return True

    def iter_files(self) -> Iterator[CandidateFile]:
        for name, content in self._contents.items():
            yield CandidateFile(name=name, path=name, size=len(content))

    def stat(self, candidate: CandidateFile) -> int:
        try:
            return len(self._contents[candidate.path])
        except KeyError:
            raise FileNotFoundError(candidate.path) from None

    def copy_to(self, candidate: CandidateFile, destination_path: str) -> None:
        content = self._contents.get(candidate.path)
        if content is None:
            raise FileNotFoundError(candidate.path)
        with open(destination_path, 'wb') as f:
            f.write(content)


class S3Source:
    """
    Invoice PDFs stored under a prefix of an S3 bucket.
    Listing uses the list_objects_v2 paginator; copies are downloads.
    """

    def __init__(self, s3_client, bucket_name: str, s3_prefix: str = "invoices/",
                 extensions: Iterable[str] = DOCUMENT_EXTENSIONS):
        self.s3 = s3_client
        self.bucket_name = bucket_name
        self.s3_prefix = s3_prefix
        self.extensions = {ext.lower() for ext in extensions}

    @property
    def key(self) -> str:
        return f"s3://{self.bucket_name}/{self.s3_prefix}"

    def exists(self) -> bool:
        try:
            self.s3.head_bucket(Bucket=self.bucket_name)
            return True
        except (BotoCoreError, ClientError) as e:
            logger.error(f"Bucket {self.bucket_name} is not accessible: {e}")
            return False

    def iter_files(self) -> Iterator[CandidateFile]:
        try:
            paginator = self.s3.get_paginator('list_objects_v2')
            pages = paginator.paginate(Bucket=self.bucket_name, Prefix=self.s3_prefix)

            for page in pages:
                for obj in page.get('Contents', []):
                    key = obj['Key']
                    filename = os.path.basename(key)
                    if filename and _has_extension(filename, self.extensions):
                        yield CandidateFile(name=filename, path=key, size=obj.get('Size'))
        except (BotoCoreError, ClientError) as e:
            logger.error(f"Error listing S3 files under {self.key}: {e}")

    def stat(self, candidate: CandidateFile) -> int:
        try:
            response = self.s3.head_object(Bucket=self.bucket_name, Key=candidate.path)
        except (BotoCoreError, ClientError) as e:
            raise FileNotFoundError(f"s3://{self.bucket_name}/{candidate.path}: {e}") from e
        return response['ContentLength']

    def copy_to(self, candidate: CandidateFile, destination_path: str) -> None:
        try:
            self.s3.download_file(self.bucket_name, candidate.path, destination_path)
        except (BotoCoreError, ClientError, RetriesExceededError) as e:
            raise OSError(f"Failed to download s3://{self.bucket_name}/{candidate.path}: {e}") from e


def as_source(source):
    """Wrap a folder path into a LocalFolderSource; pass sources through."""
    if isinstance(source, (str, os.PathLike)):
        return LocalFolderSource(os.fspath(source))
    return source
