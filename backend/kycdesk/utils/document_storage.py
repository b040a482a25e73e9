from __future__ import annotations

import os
import time
import uuid
from typing import BinaryIO

from flask import current_app
from werkzeug.utils import secure_filename

from kycdesk.errors import NotFoundError, StorageError

DOCUMENTS_DIR = "kyc-documents"

ALLOWED_EXTENSIONS = {".jpeg", ".jpg", ".png", ".pdf"}
ALLOWED_MIME_TYPES = {"image/jpeg", "image/jpg", "image/png", "application/pdf"}


def allowed_upload(filename: str | None, mimetype: str | None) -> bool:
    ext = os.path.splitext(filename or "")[1].lower()
    mime = (mimetype or "").split(";", 1)[0].strip().lower()
    return ext in ALLOWED_EXTENSIONS and mime in ALLOWED_MIME_TYPES


class LocalDocumentStore:
    """Stores document blobs on the local filesystem under ``root``.

    Keys are relative paths such as ``kyc-documents/client-7-1700000000000-1a2b3c.pdf``
    and are what the database keeps in ``KycDocument.file_path``.
    """

    def __init__(self, root: str):
        self.root = os.path.abspath(root)

    def _resolve(self, key: str) -> str:
        path = os.path.abspath(os.path.join(self.root, key))
        if os.path.commonpath([self.root, path]) != self.root:
            raise StorageError("Invalid document path")
        return path

    def new_key(self, client_id: int, original_name: str | None) -> str:
        ext = os.path.splitext(secure_filename(original_name or ""))[1].lower()
        stamp = int(time.time() * 1000)
        return f"{DOCUMENTS_DIR}/client-{int(client_id)}-{stamp}-{uuid.uuid4().hex[:6]}{ext}"

    def save(self, client_id: int, stream: BinaryIO, original_name: str | None) -> tuple[str, int]:
        key = self.new_key(client_id, original_name)
        path = self._resolve(key)
        try:
            os.makedirs(os.path.dirname(path), exist_ok=True)
            size = 0
            with open(path, "wb") as fh:
                while True:
                    chunk = stream.read(64 * 1024)
                    if not chunk:
                        break
                    fh.write(chunk)
                    size += len(chunk)
        except OSError as e:
            try:
                os.remove(path)
            except OSError:
                pass
            raise StorageError(f"Failed to store document: {e}") from e
        return key, size

    def exists(self, key: str) -> bool:
        return os.path.isfile(self._resolve(key))

    def open(self, key: str) -> BinaryIO:
        path = self._resolve(key)
        if not os.path.isfile(path):
            raise NotFoundError("Document file not found on server")
        return open(path, "rb")

    def delete(self, key: str) -> None:
        path = self._resolve(key)
        try:
            os.remove(path)
        except FileNotFoundError:
            pass


def get_document_store() -> LocalDocumentStore:
    return LocalDocumentStore(current_app.config["UPLOAD_FOLDER"])
