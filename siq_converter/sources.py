"""Sources that supply an SIQ package's content document and media files.

The converter only talks to the :class:`SIQSource` interface, so a package
can come from an uploaded zip archive or from a directory served over HTTP.
"""

import io
import logging
import re
import zipfile
import zlib
from abc import ABC, abstractmethod
from pathlib import Path
from typing import BinaryIO, Dict, Optional, Union

import requests

from siq_converter.errors import FetchError, InvalidArchiveError, MissingContentError
from siq_converter.media import (
    guess_mime, name_variants, normalize_name, preferred_folder, to_data_uri
)

logger = logging.getLogger(__name__)

CONTENT_PATTERN = re.compile(r"(^|/)content\.xml$", re.IGNORECASE)

# Raised by zipfile for corrupt, encrypted or unsupported-compression entries
UNREADABLE_ENTRY_ERRORS = (zipfile.BadZipFile, RuntimeError, NotImplementedError, zlib.error, EOFError)

# Flag bit set when a zip entry name is stored as UTF-8
_UTF8_FLAG = 0x800

ArchiveInput = Union[bytes, bytearray, str, Path, BinaryIO]


class SIQSource(ABC):
    """Capability interface the converter reads a package through."""

    @abstractmethod
    def load_content_xml(self) -> str:
        """Return the text of the package's content.xml."""

    @abstractmethod
    def load_media(self, media_type: str, file_name: str) -> Optional[str]:
        """Return a data URI for a referenced media file, or None if unavailable."""


def _entry_name(info: zipfile.ZipInfo) -> str:
    """Return the entry name, repairing UTF-8 names stored without the UTF-8 flag."""
    name = info.filename
    if info.flag_bits & _UTF8_FLAG:
        return name
    try:
        return name.encode("cp437").decode("utf-8")
    except UnicodeError:
        return name


def _base_name(path: str) -> str:
    return normalize_name(path).rsplit("/", 1)[-1]


class ArchiveSource(SIQSource):
    """SIQ package stored in a zip archive.

    ``archive`` may be the raw bytes, a path, or a binary file object.
    """

    def __init__(self, archive: ArchiveInput):
        if isinstance(archive, (bytes, bytearray)):
            archive = io.BytesIO(archive)
        try:
            self._zip = zipfile.ZipFile(archive, "r")
        except zipfile.BadZipFile as e:
            raise InvalidArchiveError(f"Not a valid SIQ archive: {str(e)}")

        # Entry name -> ZipInfo, first occurrence wins, directories excluded
        self._entries: Dict[str, zipfile.ZipInfo] = {}
        for info in self._zip.infolist():
            if info.is_dir():
                continue
            self._entries.setdefault(_entry_name(info), info)

    def close(self):
        self._zip.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def read(self, name: str) -> bytes:
        return self._zip.read(self._entries[name])

    def load_content_xml(self) -> str:
        for name in self._entries:
            if CONTENT_PATTERN.search(name):
                try:
                    data = self.read(name)
                except UNREADABLE_ENTRY_ERRORS as e:
                    raise InvalidArchiveError(f"Cannot read {name} from SIQ archive: {str(e)}")
                return data.decode("utf-8-sig", errors="replace")
        raise MissingContentError("content.xml not found in SIQ archive")

    def find_entry(self, media_type: str, file_name: str) -> Optional[str]:
        """Locate the archive entry a media reference points at.

        Exact paths under the type's folder, its lower-case spelling and the
        archive root are tried first with several encodings of the name. If
        none exist, every entry is compared by normalized base name.
        """
        folder = preferred_folder(media_type)
        folders = [folder, folder.lower(), ""] if folder else [""]
        for candidate_folder in folders:
            for name in name_variants(file_name):
                candidate = f"{candidate_folder}/{name}" if candidate_folder else name
                if candidate in self._entries:
                    return candidate

        target = _base_name(file_name)
        for name in self._entries:
            # Alternate data stream markers copied from Windows downloads
            if "Zone.Identifier" in name:
                continue
            if _base_name(name) == target:
                return name
        return None

    def load_media(self, media_type: str, file_name: str) -> Optional[str]:
        entry = self.find_entry(media_type, file_name)
        if entry is None:
            logger.warning("Media file not found in SIQ archive: %s", file_name)
            return None

        mime_type = guess_mime(file_name, f"{media_type}/*")
        try:
            data = self.read(entry)
        except UNREADABLE_ENTRY_ERRORS as e:
            logger.warning("Cannot read media file %s from SIQ archive: %s", entry, str(e))
            return None
        return to_data_uri(data, mime_type)


def build_media_url(base_url: str, media_type: str, file_name: str) -> str:
    folder = preferred_folder(media_type)
    if folder:
        return f"{base_url}/{folder}/{file_name}"
    return f"{base_url}/{file_name}"


class RemoteSource(SIQSource):
    """SIQ package unpacked into a directory served over HTTP."""

    def __init__(self, base_url: str, session: Optional[requests.Session] = None,
                 timeout: Optional[float] = None):
        self.base_url = base_url[:-1] if base_url.endswith("/") else base_url
        self.session = session or requests.Session()
        self.timeout = timeout

    @property
    def content_url(self) -> str:
        return f"{self.base_url}/content.xml"

    def load_content_xml(self) -> str:
        url = self.content_url
        try:
            response = self.session.get(url, timeout=self.timeout)
        except requests.RequestException as e:
            raise FetchError(url, str(e))
        if not response.ok:
            raise FetchError(url, f"HTTP {response.status_code}")
        return response.content.decode("utf-8-sig", errors="replace")

    def load_media(self, media_type: str, file_name: str) -> Optional[str]:
        url = build_media_url(self.base_url, media_type, file_name)
        mime_type = guess_mime(file_name, f"{media_type}/*")
        try:
            response = self.session.get(url, timeout=self.timeout)
        except requests.RequestException as e:
            logger.warning("Failed to load media %s: %s", url, str(e))
            return None
        if not response.ok:
            logger.warning("Could not load media: %s (%s)", url, response.status_code)
            return None
        return to_data_uri(response.content, mime_type)
