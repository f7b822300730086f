from fastapi import Request

from app.db import get_db
from app.services.auth_dependencies import require_user_auth
from app.services.vault_notary import Notarizer, build_notarizer
from app.services.vault_storage import BlobStore, build_blob_store


def get_blob_store() -> BlobStore:
    return build_blob_store()


def get_notarizer() -> Notarizer:
    return build_notarizer()


def client_address(request: Request) -> str | None:
    return request.client.host if request.client else None


__all__ = [
    "client_address",
    "get_blob_store",
    "get_db",
    "get_notarizer",
    "require_user_auth",
]
