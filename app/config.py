import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()


def _resolve_database_url() -> str:
    database_url = os.getenv("DATABASE_URL")
    if database_url:
        return database_url

    environment = os.getenv("ENVIRONMENT", "").strip().lower()
    if environment == "development":
        return "postgresql+psycopg://localhost:5434/docvault"

    raise ValueError(
        "DATABASE_URL is not set. Set DATABASE_URL for non-development "
        "environments or set ENVIRONMENT=development for local defaults."
    )


@dataclass(frozen=True)
class Settings:
    database_url: str = _resolve_database_url()
    db_pool_size: int = int(os.getenv("DB_POOL_SIZE", "5"))
    db_max_overflow: int = int(os.getenv("DB_MAX_OVERFLOW", "10"))
    db_pool_timeout: int = int(os.getenv("DB_POOL_TIMEOUT", "30"))
    db_pool_recycle: int = int(os.getenv("DB_POOL_RECYCLE", "1800"))

    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    # Bearer-token verification (tokens are issued by the auth service)
    jwt_secret: str = os.getenv("JWT_SECRET", "change-me")
    jwt_algorithm: str = os.getenv("JWT_ALGORITHM", "HS256")

    # Upload limits
    max_upload_bytes: int = int(
        os.getenv("MAX_UPLOAD_BYTES", str(50 * 1024 * 1024))
    )  # 50MB

    # Blob store: "pinata" or "s3"
    blob_store_backend: str = os.getenv("BLOB_STORE_BACKEND", "pinata")
    blob_timeout_seconds: float = float(os.getenv("BLOB_TIMEOUT_SECONDS", "30"))

    # Pinata / IPFS settings
    pinata_jwt: str = os.getenv("PINATA_JWT", "")
    pinata_api_url: str = os.getenv(
        "PINATA_API_URL", "https://api.pinata.cloud/pinning/pinFileToIPFS"
    )
    pinata_gateway_url: str = os.getenv(
        "PINATA_GATEWAY_URL", "https://gateway.pinata.cloud/ipfs"
    )

    # S3 / MinIO settings
    s3_endpoint_url: str = os.getenv("S3_ENDPOINT_URL", "")
    s3_access_key: str = os.getenv("S3_ACCESS_KEY", "")
    s3_secret_key: str = os.getenv("S3_SECRET_KEY", "")
    s3_bucket_name: str = os.getenv("S3_BUCKET_NAME", "docvault-blobs")
    s3_region: str = os.getenv("S3_REGION", "us-east-1")

    # Notarization (best-effort)
    rpc_url: str = os.getenv("RPC_URL", "")
    contract_address: str = os.getenv("CONTRACT_ADDRESS", "")
    contract_abi_path: str = os.getenv(
        "CONTRACT_ABI_PATH", "config/contract-config.json"
    )
    notary_private_key: str = os.getenv("NOTARY_PRIVATE_KEY", "")
    notary_timeout_seconds: int = int(os.getenv("NOTARY_TIMEOUT_SECONDS", "120"))


settings = Settings()
