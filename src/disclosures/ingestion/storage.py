# src/disclosures/ingestion/storage.py
from abc import ABC, abstractmethod
from pathlib import Path

from disclosures.config import settings


class BlobStore(ABC):
    """Key-value object storage addressed by URI strings such as ``blob://house/2025/20032062.pdf``."""

    SCHEME = "blob://"

    @abstractmethod
    def get(self, uri: str) -> bytes:
        pass

    @abstractmethod
    def put(self, uri: str, data: bytes) -> str:
        pass

    @abstractmethod
    def exists(self, uri: str) -> bool:
        pass

    @classmethod
    def uri(cls, *parts: str | int) -> str:
        return cls.SCHEME + "/".join(str(p).strip("/") for p in parts)


class LocalBlobStore(BlobStore):
    def __init__(self, root: str | Path = settings.BLOB_ROOT):
        self.root = Path(root)

    def _path(self, uri: str) -> Path:
        if not uri.startswith(self.SCHEME):
            raise ValueError(f"Not a blob URI: {uri}")
        key = uri[len(self.SCHEME) :]
        path = (self.root / key).resolve()
        if not path.is_relative_to(self.root.resolve()):
            raise ValueError(f"Blob key escapes the store root: {uri}")
        return path

    def get(self, uri: str) -> bytes:
        return self._path(uri).read_bytes()

    def put(self, uri: str, data: bytes) -> str:
        path = self._path(uri)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        return uri

    def exists(self, uri: str) -> bool:
        return self._path(uri).exists()


def ptr_pdf_uri(year: int, doc_id: str) -> str:
    return BlobStore.uri("congress/house", year, f"{doc_id}.pdf")


def ptr_text_uri(year: int, doc_id: str) -> str:
    return BlobStore.uri("congress/house", year, f"{doc_id}.txt")


def filing_list_uri(year: int) -> str:
    return BlobStore.uri("congress/house/disclosure-list", f"{year}.zip")
